"""Datetime utilities with consistent UTC timezone handling.

Timestamps (creation, completion) are timezone-aware UTC datetimes.
Schedule fields (planned, due, recurrence end) are plain calendar dates in
the user's local time; "today" is always the local date.
"""

from calendar import monthrange
from datetime import date, datetime, timezone
from typing import Optional, Union


def now_utc() -> datetime:
    """Return current datetime in UTC timezone."""
    return datetime.now(timezone.utc)


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure datetime is timezone-aware, assuming UTC if naive.

    Args:
        dt: Datetime to check/convert, or None

    Returns:
        Timezone-aware datetime, or None if input was None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=timezone.utc)

    return dt


def to_date(value: Union[date, datetime]) -> date:
    """Return the local calendar date of a timestamp.

    Aware datetimes are converted to local time first; naive datetimes are
    taken as local already. Plain dates pass through.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value


def today_local() -> date:
    """Return today's calendar date in local time."""
    return to_date(now_utc())


def add_months(value: date, months: int) -> date:
    """Add calendar months, clamping to the last day of the target month."""
    month = value.month - 1 + months
    year = value.year + month // 12
    month = month % 12 + 1
    day = min(value.day, monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def add_years(value: date, years: int) -> date:
    """Add calendar years; Feb 29 becomes Feb 28 in non-leap years."""
    return add_months(value, years * 12)


def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
    """Convert datetime to ISO string with timezone info."""
    if dt is None:
        return None

    return ensure_aware(dt).isoformat()


def to_iso_date(value: Optional[date]) -> Optional[str]:
    """Format a calendar date as YYYY-MM-DD."""
    if value is None:
        return None
    return value.isoformat()


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO timestamp written by to_iso_string."""
    if not value:
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    return ensure_aware(datetime.fromisoformat(value))


def parse_iso_date(value) -> Optional[date]:
    """Parse a YYYY-MM-DD value; dates and datetimes pass through."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)
