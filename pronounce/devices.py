"""Capture-device enumeration.

The parsers are pure functions over the text each platform's listing command
prints; ``list_input_devices`` runs the command and hands its output to the
platform's parser.
"""

import logging
import re
import subprocess

from pronounce.errors import EnumerationFailedError
from pronounce.models import InputDevice

logger = logging.getLogger(__name__)

DEFAULT_DEVICE_LABEL = "<system default>"

_QUOTED_NAME = re.compile(r'"(.+?)"')
_AVFOUNDATION_ENTRY = re.compile(r"\[(\d+)\] (.+)$")


def parse_pactl_sources(output: str) -> list[InputDevice]:
    """Parse ``pactl list short sources``: the second column is the source name."""
    names = []
    for line in output.splitlines():
        fields = line.split()
        if len(fields) >= 2:
            names.append(fields[1])
    return [InputDevice(name=n) for n in sorted(names)]


def parse_dshow_devices(output: str) -> list[InputDevice]:
    """Parse ``ffmpeg -list_devices true -f dshow -i dummy`` output.

    Newer ffmpeg tags each entry with ``(audio)``/``(video)``; older builds
    group entries under "DirectShow audio/video devices" headers. Alternative
    name lines (``Alternative name "@device_cm_..."``) are skipped.
    """
    devices: list[InputDevice] = []
    section = None
    for line in output.splitlines():
        lowered = line.lower()
        if "directshow audio devices" in lowered:
            section = "audio"
            continue
        if "directshow video devices" in lowered:
            section = "video"
            continue
        if "alternative name" in lowered:
            continue
        match = _QUOTED_NAME.search(line)
        if match is None:
            continue
        tagged_audio = line.rstrip().endswith("(audio)")
        tagged_video = line.rstrip().endswith("(video)")
        if tagged_video or (section == "video" and not tagged_audio):
            continue
        if tagged_audio or section == "audio":
            devices.append(InputDevice(name=match.group(1)))
    return devices


def parse_avfoundation_devices(output: str) -> list[InputDevice]:
    """Parse ``ffmpeg -f avfoundation -list_devices true -i ""`` output.

    Only entries under the "AVFoundation audio devices" header are returned.
    When the header is missing every ``[n] Name`` entry is taken.
    """
    has_audio_header = "audio devices" in output.lower()
    in_audio = not has_audio_header
    devices: list[InputDevice] = []
    for line in output.splitlines():
        lowered = line.lower()
        if "video devices" in lowered:
            in_audio = False
            continue
        if "audio devices" in lowered:
            in_audio = True
            continue
        if not in_audio:
            continue
        match = _AVFOUNDATION_ENTRY.search(line)
        if match:
            devices.append(InputDevice(name=match.group(2).strip(), index=int(match.group(1))))
    return devices


def list_input_devices(platform) -> list[InputDevice]:
    """Enumerate capture devices with the given platform strategy.

    An empty list means no devices were found; a failing listing command
    raises EnumerationFailedError instead.
    """
    cmd = platform.build_enumerate_command()
    logger.info("Executing command: %s", cmd)
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            errors="replace",
            stdin=subprocess.DEVNULL,
        )
    except OSError as e:
        raise EnumerationFailedError(f"Could not run {cmd[0]}: {e}") from e

    if platform.enumeration_checks_returncode and result.returncode != 0:
        raise EnumerationFailedError(
            f"{cmd[0]} failed (rc={result.returncode}): {result.stderr.strip()[-300:]}"
        )

    # ffmpeg prints its device listing to stderr
    return platform.parse_devices(result.stdout + result.stderr)
