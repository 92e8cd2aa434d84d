"""Shared data types used across Pronounce."""

from dataclasses import dataclass

from pronounce.errors import InvalidRangeError
from pronounce.timecode import format_time, parse_time


@dataclass
class PlaybackWindow:
    """A validated start/end pair in seconds, ready to hand to a player."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass
class InputDevice:
    """A capture device as reported by the platform's listing command."""

    name: str
    index: int | None = None  # position in listings that address devices by number


@dataclass
class TimeRange:
    """The selected sub-range of the reference clip.

    This is the single source of truth for start/end. The slider percentages
    and the ``MM:SS`` texts are projections of it; both input surfaces write
    here first and read their display values back afterwards.

    ``clip_duration`` of 0 means the duration is not known yet, in which case
    values are only clamped at zero.
    """

    start: float = 0.0
    end: float = 0.0
    clip_duration: float = 0.0

    def _clamp(self, seconds: float) -> float:
        seconds = max(float(seconds), 0.0)
        if self.clip_duration > 0:
            seconds = min(seconds, self.clip_duration)
        return seconds

    def set_clip_duration(self, duration: float) -> None:
        self.clip_duration = max(float(duration), 0.0)
        self.start = self._clamp(self.start)
        self.end = self._clamp(self.end)

    def reset_to_clip(self, duration: float) -> None:
        """Adopt a freshly probed duration and select the whole clip."""
        self.set_clip_duration(duration)
        self.start = 0.0
        self.end = self.clip_duration

    def set_start(self, seconds: float) -> None:
        self.start = self._clamp(seconds)

    def set_end(self, seconds: float) -> None:
        self.end = self._clamp(seconds)

    # --- text projection ---

    def set_start_text(self, text: str) -> None:
        self.set_start(parse_time(text))

    def set_end_text(self, text: str) -> None:
        self.set_end(parse_time(text))

    @property
    def start_text(self) -> str:
        return format_time(self.start)

    @property
    def end_text(self) -> str:
        return format_time(self.end)

    # --- slider projection ---

    def _from_percent(self, percent: float) -> float:
        percent = min(max(float(percent), 0.0), 100.0)
        return percent / 100 * self.clip_duration

    def _to_percent(self, seconds: float) -> float:
        if self.clip_duration <= 0:
            return 0.0
        return seconds / self.clip_duration * 100

    def set_start_percent(self, percent: float) -> None:
        if self.clip_duration > 0:
            self.set_start(self._from_percent(percent))

    def set_end_percent(self, percent: float) -> None:
        if self.clip_duration > 0:
            self.set_end(self._from_percent(percent))

    @property
    def start_percent(self) -> float:
        return self._to_percent(self.start)

    @property
    def end_percent(self) -> float:
        return self._to_percent(self.end)

    def validate_for_playback(self) -> PlaybackWindow:
        """Check ordering and clamp the end to the clip before playing.

        Raises:
            InvalidRangeError: if end is not after start.
        """
        end = self.end
        if end > self.start and self.clip_duration > 0:
            end = min(end, self.clip_duration)
        if end <= self.start:
            raise InvalidRangeError("End time must be greater than start time")
        self.end = end
        return PlaybackWindow(start=self.start, end=end)
