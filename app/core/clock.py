"""
Time helpers.
All timestamps handled by the core are timezone-aware UTC datetimes.
"""

from datetime import date, datetime, time, timezone


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | date) -> datetime:
    """
    Normalize a date or datetime to an aware UTC datetime.

    Naive datetimes are assumed to already be in UTC, and a bare date
    means midnight UTC of that day.
    """
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def previous_month_window(now: datetime) -> tuple[datetime, datetime]:
    """
    Return the [start, end) bounds of the calendar month before `now`.

    `end` is the first instant of the current month, so the window covers
    every instant up to and including the last instant of the previous month.
    """
    now = as_utc(now)
    end = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if end.month == 1:
        start = end.replace(year=end.year - 1, month=12)
    else:
        start = end.replace(month=end.month - 1)
    return start, end
