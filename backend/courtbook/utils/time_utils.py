from __future__ import annotations

from datetime import time
import re

MINUTES_PER_DAY = 24 * 60

_HHMM = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")


def time_to_minutes(t: time, *, is_end_time: bool = False) -> int:
    """
    Convert time to minutes since midnight.

    Args:
        t: Time object.
        is_end_time: If True, treat time(0, 0) as 1440 (end of day).
    """
    minutes = t.hour * 60 + t.minute
    if is_end_time and minutes == 0:
        return MINUTES_PER_DAY
    return minutes


def minutes_to_time(minutes: int) -> time:
    """Inverse of time_to_minutes; 1440 is stored as midnight."""
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise ValueError(f"minutes out of range: {minutes}")
    if minutes == MINUTES_PER_DAY:
        return time(0, 0)
    return time(minutes // 60, minutes % 60)


def minutes_to_label(minutes: int) -> str:
    """Render minutes since midnight as HH:MM ("00:00" for end of day)."""
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise ValueError(f"minutes out of range: {minutes}")
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_hhmm(value: str, *, is_end_time: bool = False) -> int:
    """
    Parse "HH:MM" (or "HH:MM:SS") into minutes since midnight.

    Raises:
        ValueError: if the value is not a valid wall-clock time.
    """
    match = _HHMM.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"invalid time: {value!r}")
    hours, mins = int(match.group(1)), int(match.group(2))
    if hours == 24 and mins == 0:
        return MINUTES_PER_DAY
    if hours > 23 or mins > 59:
        raise ValueError(f"invalid time: {value!r}")
    return time_to_minutes(time(hours, mins), is_end_time=is_end_time)
