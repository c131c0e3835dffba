"""Shared utility functions."""

from __future__ import annotations

import calendar
from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta


def utc_now() -> datetime:
    """Return aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Normalize datetime to UTC timezone."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """Return inclusive UTC bounds of a calendar month.

    The end bound is the last millisecond of the month, matching the
    ``23:59:59.999`` convention used by stored reports.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {month}")
    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    end = datetime(year, month, last_day, 23, 59, 59, 999000, tzinfo=timezone.utc)
    return start, end


def previous_month(year: int, month: int) -> tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def add_months(dt: datetime, months: int) -> datetime:
    """Shift by calendar months, clamping the day to the target month length."""
    return dt + relativedelta(months=months)


def floor_to_hour_of_day(dt: datetime, hour: int, zone: ZoneInfo) -> datetime:
    """Move ``dt`` to ``hour``:00 local time without passing it.

    Uses the same local day when that is not later than ``dt``, otherwise the
    previous day. Result is returned in UTC.
    """
    local = ensure_utc(dt).astimezone(zone)
    candidate = datetime.combine(local.date(), time(hour), tzinfo=zone)
    if candidate > local:
        candidate = datetime.combine(local.date() - timedelta(days=1), time(hour), tzinfo=zone)
    return candidate.astimezone(timezone.utc)
