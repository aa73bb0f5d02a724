from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

@dataclass(frozen=True)
class RawCalendarEntry:
    start: datetime             # timezone-aware, in the entry's own zone
    summary: str = ""
    end: Optional[datetime] = None
    start_is_date_only: bool = False   # DTSTART;VALUE=DATE


@dataclass(frozen=True)
class Event:
    title: str
    time: datetime              # converted to the display timezone
    is_all_day: bool = False
    is_today: bool = False
