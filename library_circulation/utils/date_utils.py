"""Date manipulation utilities"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the database columns round-trip"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_calendar_day(value: Union[date, datetime]) -> date:
    """Truncate a timestamp to its calendar day (midnight)"""
    if isinstance(value, datetime):
        return value.date()
    return value


def calendar_days_between(start: Union[date, datetime], end: Union[date, datetime]) -> int:
    """Whole calendar days from start to end; negative when end is earlier"""
    return (to_calendar_day(end) - to_calendar_day(start)).days


def add_days(from_date: datetime, days: int) -> datetime:
    return from_date + timedelta(days=days)


def period_start(period: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Lower bound for a reporting period.

    "today" starts at midnight, "week" and "month" are rolling 7 and 30 day
    windows, "all" has no bound.
    """
    now = now or utcnow()
    if period == "today":
        return datetime.combine(now.date(), datetime.min.time())
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return now - timedelta(days=30)
    if period == "all":
        return None
    raise ValueError(f"Unknown period: {period}")
