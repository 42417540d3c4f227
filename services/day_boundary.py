"""Day Boundary helpers - UTC calendar-day keys shared by every aggregate.

All bucketing is done on UTC calendar days, never on elapsed hours:
23:59:59 and 00:00:01 on consecutive days are different days, while
00:00:01 and 23:59:59 on the same day collapse to one key.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    SQLite hands DateTime columns back without tzinfo, so naive values are
    taken to already be UTC.
    """
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def utc_day(moment: Optional[datetime] = None) -> date:
    """Truncate an instant (default: now) to its UTC calendar day."""
    if moment is None:
        moment = utc_now()
    return as_utc(moment).date()


def day_string(moment: Optional[datetime] = None) -> str:
    """
    Calendar-day key for an instant, formatted YYYY-MM-DD.

    Example:
        >>> day_string(datetime(2025, 3, 1, 23, 59, 59, tzinfo=timezone.utc))
        '2025-03-01'
    """
    return utc_day(moment).isoformat()


def parse_day_string(value: str) -> date:
    return date.fromisoformat(value)


def previous_day(day: date) -> date:
    return day - timedelta(days=1)


def is_consecutive_day(earlier: date, later: date) -> bool:
    """True when `later` is exactly one calendar day after `earlier`."""
    return later - earlier == timedelta(days=1)
