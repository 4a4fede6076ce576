"""
Timezone utilities for the court booking platform.

The engine works in UTC only. Conversion to a caller's timezone happens at
the HTTP boundary through an explicit timezone argument.
"""

from datetime import date, datetime, timedelta
from typing import Optional

import pytz

from .exceptions import ValidationException
from ..utils.time_utils import MINUTES_PER_DAY


def utc_now() -> datetime:
    """Current aware datetime in UTC."""
    return datetime.now(pytz.UTC)


def utc_today() -> date:
    return utc_now().date()


def get_timezone(name: Optional[str]) -> Optional[pytz.BaseTzInfo]:
    """
    Resolve an IANA timezone name.

    Returns None when no name is given.

    Raises:
        ValidationException: if the name is unknown
    """
    if not name:
        return None
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise ValidationException(
            f"Unknown timezone: {name}",
            code="INVALID_TIMEZONE",
            details={"timezone": name},
        )


def to_local(day: date, minutes: int, tz: pytz.BaseTzInfo) -> datetime:
    """Convert a UTC wall-clock (day, minutes since midnight) to an aware local datetime."""
    base = datetime(day.year, day.month, day.day)
    if minutes >= MINUTES_PER_DAY:
        base += timedelta(days=1)
        minutes -= MINUTES_PER_DAY
    utc_dt = pytz.UTC.localize(base + timedelta(minutes=minutes))
    return utc_dt.astimezone(tz)


def local_label(day: date, minutes: int, tz: pytz.BaseTzInfo) -> str:
    """HH:MM label of a UTC wall-clock time as seen in tz."""
    return to_local(day, minutes, tz).strftime("%H:%M")
