"""Error types surfaced to the status line.

Every error here aborts the current operation only; none of them is fatal to
the application.
"""


class PronounceError(Exception):
    pass


class SpawnFailedError(PronounceError):
    """An external audio process could not be started."""


class ProbeFailedError(PronounceError):
    """ffprobe failed to report a duration."""


class ParseFailedError(PronounceError):
    """ffprobe output was not a number."""


class InvalidRangeError(PronounceError, ValueError):
    """The selected end time is not after the start time."""


class UnsupportedPlatformError(PronounceError):
    pass


class EnumerationFailedError(PronounceError):
    """The capture-device listing command failed."""


class ReferenceNotFoundError(PronounceError, FileNotFoundError):
    """A typed-in reference path does not exist."""
