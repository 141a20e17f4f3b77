# clipwave/common/timecode.py
from __future__ import annotations

from clipwave.common.errors import ValidationError

_FORMAT_HINT = "Time must be in format hh:mm:ss or hh:mm:ss.milliseconds"


def parse_timecode(text: str) -> float:
    """
    Parse "hh:mm:ss" or "hh:mm:ss.fff" into seconds, keeping sub-second precision.
    Hours may have any number of digits; minutes are exactly two digits.
    """
    parts = (text or "").strip().split(":")
    if len(parts) != 3:
        raise ValidationError(_FORMAT_HINT)
    h, m, s = parts

    if not h or not h.isdigit():
        raise ValidationError("Invalid hours")
    if len(m) != 2 or not m.isdigit():
        raise ValidationError("Invalid minutes (must be 2 digits)")
    try:
        seconds = float(s)
    except ValueError:
        raise ValidationError("Invalid seconds") from None
    if seconds != seconds:  # NaN
        raise ValidationError("Invalid seconds")

    minutes = int(m)
    if minutes >= 60 or seconds >= 60.0 or seconds < 0.0:
        raise ValidationError("Minutes and seconds must be < 60")

    return int(h) * 3600.0 + minutes * 60.0 + seconds


def time_for_filename(text: str) -> str:
    """'00:01:02.500' -> '00h01h02.500' (':' is not allowed in Windows file names)."""
    return text.strip().replace(":", "h")


def format_seconds_arg(seconds: float) -> str:
    """Decimal seconds for ffmpeg time options, e.g. 3.17 -> '3.170000'."""
    return f"{seconds:.6f}"
