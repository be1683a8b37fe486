"""Shared date and time helpers used across the scheduling engine."""

from datetime import date, datetime, time
from typing import Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"
DATE_TIME_FORMAT = "%Y-%m-%d %H:%M"

MINUTES_PER_DAY = 24 * 60

# Legacy abbreviations seen in stored availability windows.
TIMEZONE_ALIASES: dict[str, str] = {
    "PST": "America/Los_Angeles",
    "PDT": "America/Los_Angeles",
    "MST": "America/Denver",
    "CST": "America/Chicago",
    "EST": "America/New_York",
    "EDT": "America/New_York",
}

TimeLike = Union[str, time]


def time_str_to_minutes(value: TimeLike) -> int:
    """Convert an ``HH:MM`` string or ``datetime.time`` to minutes since midnight.

    Examples:
        >>> time_str_to_minutes("08:15")
        495
        >>> time_str_to_minutes(time(23, 45))
        1425
    """
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    parsed = datetime.strptime(value.strip(), TIME_FORMAT)
    return parsed.hour * 60 + parsed.minute


def minutes_to_time_str(minutes: int) -> str:
    """Convert minutes since midnight to an ``HH:MM`` string."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_date(value: Union[str, date]) -> date:
    """Parse a ``YYYY-MM-DD`` string; dates pass through unchanged."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value.strip(), DATE_FORMAT).date()


def format_date(value: Union[str, date]) -> str:
    return parse_date(value).strftime(DATE_FORMAT)


def format_date_time(value: datetime) -> str:
    return value.strftime(DATE_TIME_FORMAT)


def resolve_timezone(name: str) -> ZoneInfo:
    """Resolve an IANA name or a legacy alias such as ``PST`` to a ZoneInfo."""
    key = TIMEZONE_ALIASES.get(name.strip().upper(), name.strip())
    try:
        return ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {name!r}") from None


def local_datetime(day: Union[str, date], clock_time: TimeLike, tz_name: str) -> datetime:
    """Build a timezone-aware datetime for a wall-clock time on ``day``."""
    minutes = time_str_to_minutes(clock_time)
    naive = datetime.combine(parse_date(day), time(minutes // 60, minutes % 60))
    return naive.replace(tzinfo=resolve_timezone(tz_name))
