"""
Time helpers shared by services.
Everything is stored and compared in UTC; local time only matters for
analytics period boundaries.
"""
import math
from datetime import datetime, timedelta, timezone
from typing import Iterator, Optional, Tuple

import pytz


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to timezone-aware UTC.
    Naive values (as returned by SQLite) are assumed to already be UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def duration_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between two instants, rounded half up."""
    seconds = (ensure_utc(end) - ensure_utc(start)).total_seconds()
    return math.floor(seconds / 60 + 0.5)


def period_range(period: Optional[str], timezone_str: str, now: Optional[datetime] = None) -> Optional[Tuple[datetime, datetime]]:
    """
    Resolve a named reporting period into a UTC [start, end] range.

    Args:
        period: "week" (Monday to Sunday), "month", "last30" or None
        timezone_str: Timezone used for day/week/month boundaries
        now: Reference instant (defaults to current time)

    Returns:
        (start, end) in UTC, or None when no period filter applies
    """
    if not period:
        return None
    tz = pytz.timezone(timezone_str)
    now_utc = ensure_utc(now) if now else utcnow()
    local_now = now_utc.astimezone(tz)

    if period == "last30":
        return now_utc - timedelta(days=30), now_utc

    if period == "week":
        start_day = (local_now - timedelta(days=local_now.weekday())).date()
        end_day = start_day + timedelta(days=7)
    elif period == "month":
        start_day = local_now.date().replace(day=1)
        end_day = _add_months(start_day.year, start_day.month, 1)
    else:
        return None

    start = tz.localize(datetime(start_day.year, start_day.month, start_day.day))
    end = tz.localize(datetime(end_day.year, end_day.month, end_day.day)) - timedelta(microseconds=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def _add_months(year: int, month: int, delta: int):
    index = year * 12 + (month - 1) + delta
    return datetime(index // 12, index % 12 + 1, 1).date()


def subtract_months(dt: datetime, months: int) -> datetime:
    """Same day-of-month `months` earlier, clamped to the last day of the target month."""
    target = _add_months(dt.year, dt.month, -months)
    next_month = _add_months(target.year, target.month, 1)
    last_day = (next_month - timedelta(days=1)).day
    return dt.replace(year=target.year, month=target.month, day=min(dt.day, last_day))


def iter_months(start: datetime, end: datetime) -> Iterator[Tuple[int, int]]:
    """Yield (year, month) for every calendar month touched by [start, end]."""
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        yield year, month
        nxt = _add_months(year, month, 1)
        year, month = nxt.year, nxt.month
