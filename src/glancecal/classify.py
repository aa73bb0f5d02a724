from __future__ import annotations
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional

from .models import RawCalendarEntry

ONE_DAY = timedelta(hours=24)


def _utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_all_day(entry: RawCalendarEntry) -> bool:
    if entry.start_is_date_only:
        return True
    if entry.end is None:
        return False

    # Elapsed time, not wall-clock difference, so DST days do not count as 24h.
    elapsed = _utc(entry.end) - _utc(entry.start)
    return elapsed == ONE_DAY and entry.start.hour == 0 and entry.start.minute == 0


def is_today(start: Optional[datetime], now: datetime, tz: Optional[tzinfo] = None) -> bool:
    """Report whether ``start`` falls on the same calendar day as ``now``.

    By default both values are truncated to midnight UTC, so the result does
    not follow the display timezone. Passing ``tz`` compares local dates in
    that zone instead.
    """
    if start is None:
        return False
    if tz is None:
        return _utc(start).date() == _utc(now).date()
    return _utc(start).astimezone(tz).date() == _utc(now).astimezone(tz).date()
