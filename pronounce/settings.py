"""Application settings — built from CLI flags, optionally seeded from JSON."""

import json
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

RECORDING_FILENAME = "pronounceRecording.wav"


def default_recording_path() -> Path:
    return Path(tempfile.gettempdir()) / RECORDING_FILENAME


@dataclass
class RecorderSettings:
    """What the recorder needs when a recording starts."""

    device: str = ""  # empty means the system default source
    recording_path: Path = field(default_factory=default_recording_path)
    stop_timeout: float = 2.0


@dataclass
class ServerSettings:
    """Where the web UI listens."""

    host: str = "127.0.0.1"
    port: int = 8322
    open_browser: bool = True


@dataclass
class Settings:
    """Top-level settings."""

    recorder: RecorderSettings = field(default_factory=RecorderSettings)
    server: ServerSettings = field(default_factory=ServerSettings)
    log_level: str = "INFO"


def load_settings(path: str | Path) -> Settings:
    """Load settings from a JSON file. Missing sections keep their defaults."""
    path = Path(path)
    data = json.loads(path.read_text())

    if not isinstance(data, dict):
        raise ValueError("Settings file must contain a JSON object")

    recorder = RecorderSettings(**data["recorder"]) if "recorder" in data else RecorderSettings()
    recorder.recording_path = Path(recorder.recording_path)
    recorder.stop_timeout = float(recorder.stop_timeout)
    server = ServerSettings(**data["server"]) if "server" in data else ServerSettings()

    return Settings(
        recorder=recorder,
        server=server,
        log_level=str(data.get("log_level", "INFO")).upper(),
    )
