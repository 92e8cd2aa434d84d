"""Per-OS command construction for recording, playback, probing and listing.

One strategy is chosen at startup by ``detect_platform`` and injected into the
session; nothing else switches on the operating system.
"""

import sys
from pathlib import Path

from pronounce import devices, ffutil
from pronounce.errors import UnsupportedPlatformError
from pronounce.models import InputDevice


def _seconds_arg(value: float) -> str:
    return f"{value:.2f}"


class AudioPlatform:
    """Base strategy. Subclasses fill in the platform-specific binaries."""

    name = "generic"
    # True when the reference player cannot seek, so the selected range has to
    # be cut into a temporary file before playback.
    needs_segment_extraction = False
    enumeration_checks_returncode = False

    def build_record_command(self, output_path: Path, device: str = "") -> list[str]:
        raise NotImplementedError

    def build_playback_command(
        self,
        path: Path,
        start: float | None = None,
        duration: float | None = None,
    ) -> list[str]:
        raise NotImplementedError

    def build_enumerate_command(self) -> list[str]:
        raise NotImplementedError

    def parse_devices(self, output: str) -> list[InputDevice]:
        raise NotImplementedError

    def build_probe_command(self, path: Path) -> list[str]:
        return ffutil.duration_command(path)

    def build_extract_command(
        self, input_path: Path, start: float, duration: float, output_path: Path
    ) -> list[str]:
        return ffutil.segment_command(input_path, start, duration, output_path)

    def _ffplay(self, path: Path, start: float | None, duration: float | None) -> list[str]:
        cmd = ["ffplay"]
        if start is not None:
            cmd += ["-ss", _seconds_arg(start)]
        if duration is not None:
            cmd += ["-t", _seconds_arg(duration)]
        cmd += ["-nodisp", "-autoexit", "-loglevel", "quiet", str(path)]
        return cmd


class LinuxPlatform(AudioPlatform):
    name = "linux"
    enumeration_checks_returncode = True

    def build_record_command(self, output_path: Path, device: str = "") -> list[str]:
        # Pulse/PipeWire so that virtual sources (noise filters, monitors) work
        return [
            "ffmpeg",
            "-loglevel", "error",
            "-f", "pulse",
            "-i", device or "default",
            "-ac", "1",
            "-y", str(output_path),
        ]

    def build_playback_command(self, path, start=None, duration=None):
        if start is None and duration is None:
            return ["aplay", "-q", str(path)]
        return self._ffplay(path, start, duration)

    def build_enumerate_command(self) -> list[str]:
        return ["pactl", "list", "short", "sources"]

    def parse_devices(self, output: str) -> list[InputDevice]:
        return devices.parse_pactl_sources(output)


class MacPlatform(AudioPlatform):
    name = "darwin"
    needs_segment_extraction = True

    def build_record_command(self, output_path: Path, device: str = "") -> list[str]:
        return ["sox", "-q", "-t", "coreaudio", device or "default", str(output_path)]

    def build_playback_command(self, path, start=None, duration=None):
        if start is not None or duration is not None:
            raise ValueError("afplay cannot seek; extract the segment first")
        return ["afplay", str(path)]

    def build_enumerate_command(self) -> list[str]:
        return ["ffmpeg", "-hide_banner", "-f", "avfoundation", "-list_devices", "true", "-i", ""]

    def parse_devices(self, output: str) -> list[InputDevice]:
        return devices.parse_avfoundation_devices(output)


class WindowsPlatform(AudioPlatform):
    name = "windows"

    def build_record_command(self, output_path: Path, device: str = "") -> list[str]:
        source = device or "default"
        if not source.startswith("audio="):
            source = f"audio={source}"
        return ["ffmpeg", "-loglevel", "error", "-f", "dshow", "-i", source, "-y", str(output_path)]

    def build_playback_command(self, path, start=None, duration=None):
        return self._ffplay(path, start, duration)

    def build_enumerate_command(self) -> list[str]:
        return ["ffmpeg", "-hide_banner", "-list_devices", "true", "-f", "dshow", "-i", "dummy"]

    def parse_devices(self, output: str) -> list[InputDevice]:
        return devices.parse_dshow_devices(output)


def detect_platform(platform_name: str | None = None) -> AudioPlatform:
    """Pick the strategy for ``platform_name`` (defaults to ``sys.platform``)."""
    name = platform_name if platform_name is not None else sys.platform
    if name.startswith("linux"):
        return LinuxPlatform()
    if name == "darwin":
        return MacPlatform()
    if name in ("win32", "cygwin"):
        return WindowsPlatform()
    raise UnsupportedPlatformError(f"Unsupported operating system: {name}")
