"""Shared test fixtures."""

import sys
import time
from pathlib import Path

import pytest

from pronounce import devices
from pronounce.dispatch import UiLoop
from pronounce.platforms import AudioPlatform

FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Stand-ins for the external audio tools: one that runs until stopped, one
# that exits straight away.
SLEEPER = [sys.executable, "-c", "import time; time.sleep(30)"]
QUICK = [sys.executable, "-c", "pass"]


class FakePlatform(AudioPlatform):
    """Platform strategy whose commands are harmless Python child processes."""

    name = "fake"
    enumeration_checks_returncode = True

    def __init__(self) -> None:
        self.record_cmd = list(SLEEPER)
        self.playback_cmd = list(SLEEPER)
        self.calls: list[tuple] = []

    def build_record_command(self, output_path, device=""):
        self.calls.append(("record", Path(output_path), device))
        return list(self.record_cmd)

    def build_playback_command(self, path, start=None, duration=None):
        self.calls.append(("play", Path(path), start, duration))
        return list(self.playback_cmd)

    def build_enumerate_command(self):
        return ["pactl", "list", "short", "sources"]

    def parse_devices(self, output):
        return devices.parse_pactl_sources(output)


def wait_until(predicate, timeout: float = 5.0, interval: float = 0.02) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def sample_settings_path() -> Path:
    return FIXTURES_DIR / "sample_settings.json"


@pytest.fixture
def loop():
    ui_loop = UiLoop(name="test-ui").start()
    yield ui_loop
    ui_loop.stop()


@pytest.fixture
def fake_platform() -> FakePlatform:
    return FakePlatform()
