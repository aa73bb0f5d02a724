from __future__ import annotations
from datetime import datetime, timedelta, tzinfo
import logging
from typing import List, Optional, Sequence, Tuple

from .classify import is_all_day, is_today
from .config import AggregationConfig
from .fetcher import CalendarSourceFetcher
from .models import Event, RawCalendarEntry

logger = logging.getLogger(__name__)


def fetch_window(now: datetime, max_days: int) -> Tuple[datetime, datetime]:
    return now, now + timedelta(days=max_days)


def aggregate(
    per_source: Sequence[Sequence[RawCalendarEntry]],
    global_cap: int,
    tz: tzinfo,
    now: datetime,
    today_tz: Optional[tzinfo] = None,
) -> List[Event]:
    """Merge per-source entries into one time-ordered, capped list of events.

    Sources are concatenated in configuration order and then stably sorted by
    start, so ties keep source order. Duplicates across sources are kept.
    """
    merged: List[RawCalendarEntry] = []
    for entries in per_source:
        merged.extend(entries)

    merged.sort(key=lambda e: e.start)
    if global_cap > 0 and len(merged) > global_cap:
        merged = merged[:global_cap]

    return [
        Event(
            title=e.summary,
            time=e.start.astimezone(tz),
            is_all_day=is_all_day(e),
            is_today=is_today(e.start, now, today_tz),
        )
        for e in merged
    ]


def load_events(
    fetcher: CalendarSourceFetcher,
    cfg: AggregationConfig,
    tz: tzinfo,
    now: datetime,
) -> List[Event]:
    """Fetch every configured source in order and aggregate the results.

    The first failing source raises and nothing is aggregated.
    """
    window_start, window_end = fetch_window(now, cfg.max_days)
    logger.info("Fetching events data sources=%d", len(cfg.calendars))

    per_source: List[List[RawCalendarEntry]] = []
    for cal in cfg.calendars:
        per_source.append(fetcher.fetch(cal.url, window_start, window_end, cal.max_events))

    today_tz = tz if cfg.today_mode == "display" else None
    events = aggregate(per_source, cfg.max_events, tz, now, today_tz=today_tz)
    logger.info("Aggregated %d events", len(events))
    return events
