"""FFmpeg/ffprobe subprocess helpers."""

import logging
import shutil
import subprocess
from pathlib import Path

from pronounce.errors import ParseFailedError, ProbeFailedError

logger = logging.getLogger(__name__)


class FFmpegNotFoundError(RuntimeError):
    pass


def check_ffmpeg() -> None:
    """Raise FFmpegNotFoundError if ffmpeg/ffprobe are not on PATH."""
    for cmd in ("ffmpeg", "ffprobe"):
        if shutil.which(cmd) is None:
            raise FFmpegNotFoundError(f"{cmd} not found on PATH")


def duration_command(input_path: Path) -> list[str]:
    return [
        "ffprobe",
        "-v", "quiet",
        "-show_entries", "format=duration",
        "-of", "csv=p=0",
        str(input_path),
    ]


def parse_duration(stdout: str) -> float:
    """Parse the plain-text duration ffprobe prints (e.g. ``"125.400000\\n"``)."""
    text = stdout.strip()
    try:
        return float(text)
    except ValueError:
        raise ParseFailedError(f"Unexpected ffprobe output: {text[:80]!r}") from None


def probe_duration(input_path: Path, cmd: list[str] | None = None) -> float:
    """Return the duration of ``input_path`` in seconds.

    Raises:
        ProbeFailedError: ffprobe could not be run or exited non-zero.
        ParseFailedError: ffprobe's output is not a number.
    """
    cmd = cmd or duration_command(input_path)
    logger.info("Executing command: %s", cmd)
    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, stdin=subprocess.DEVNULL, check=True
        )
    except (OSError, subprocess.CalledProcessError) as e:
        raise ProbeFailedError(f"ffprobe failed for {input_path}: {e}") from e
    return parse_duration(result.stdout)


def segment_command(
    input_path: Path, start: float, duration: float, output_path: Path
) -> list[str]:
    return [
        "ffmpeg",
        "-loglevel", "error",
        "-ss", f"{start:.2f}",
        "-t", f"{duration:.2f}",
        "-i", str(input_path),
        "-y", str(output_path),
    ]


def extract_segment(
    input_path: Path,
    start: float,
    duration: float,
    output_path: Path,
    cmd: list[str] | None = None,
) -> Path:
    """Cut ``[start, start + duration]`` of ``input_path`` into ``output_path``.

    Blocks until ffmpeg finishes. Raises CalledProcessError/OSError on failure.
    """
    cmd = cmd or segment_command(input_path, start, duration, output_path)
    logger.info("Executing command: %s", cmd)
    subprocess.run(cmd, capture_output=True, stdin=subprocess.DEVNULL, check=True)
    return output_path
