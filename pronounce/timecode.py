"""MM:SS time codec shared by the text inputs, sliders and duration label."""


def format_time(seconds: float) -> str:
    """Format seconds as ``MM:SS``, truncating fractions. Minutes may exceed 59."""
    total = max(int(seconds), 0)
    return f"{total // 60:02d}:{total % 60:02d}"


def _parse_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


def parse_time(text: str) -> float:
    """Parse ``MM:SS`` into seconds.

    Malformed input never raises: anything without exactly one colon yields 0,
    and a side that is not an integer counts as 0.
    """
    parts = text.split(":")
    if len(parts) != 2:
        return 0.0
    mins, secs = (_parse_int(p) for p in parts)
    return float(mins * 60 + secs)
