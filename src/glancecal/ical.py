from __future__ import annotations
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any, List, Optional, Union

from icalendar import Calendar
import recurring_ical_events

from .models import RawCalendarEntry


class CalendarParseError(ValueError):
    """Raised when ICS content cannot be parsed into event instances."""


def _anchor(value: Union[date, datetime], default_tz: tzinfo) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=default_tz)
        return value
    return datetime.combine(value, time.min, tzinfo=default_tz)


def _decoded(component: Any, key: str) -> Any:
    try:
        return component.decoded(key)
    except KeyError:
        return None
    except Exception as exc:
        raise CalendarParseError(f"Unable to decode {key}") from exc


def _to_entry(component: Any, default_tz: tzinfo) -> Optional[RawCalendarEntry]:
    dtstart = _decoded(component, "DTSTART")
    if not isinstance(dtstart, date):
        return None

    date_only = not isinstance(dtstart, datetime)
    start = _anchor(dtstart, default_tz)

    end: Optional[datetime] = None
    dtend = _decoded(component, "DTEND")
    if isinstance(dtend, date):
        end = _anchor(dtend, default_tz)
    else:
        duration = _decoded(component, "DURATION")
        if isinstance(duration, timedelta):
            end = start + duration

    summary = component.get("SUMMARY")
    return RawCalendarEntry(
        start=start,
        end=end,
        summary=str(summary) if summary is not None else "",
        start_is_date_only=date_only,
    )


def parse_calendar(
    payload: Union[str, bytes],
    window_start: datetime,
    window_end: datetime,
    default_tz: tzinfo = timezone.utc,
) -> List[RawCalendarEntry]:
    """Parse an ICS payload and expand it to the entries intersecting the window.

    Entries come back in the order the recurrence expander yields them; no
    sorting is applied. Date-only and floating values are anchored in
    ``default_tz``.
    """
    try:
        calendar = Calendar.from_ical(payload)
    except Exception as exc:
        raise CalendarParseError("ICS payload could not be parsed") from exc

    try:
        components = recurring_ical_events.of(calendar).between(window_start, window_end)
    except Exception as exc:
        raise CalendarParseError("ICS recurrence expansion failed") from exc

    entries: List[RawCalendarEntry] = []
    for component in components:
        if str(getattr(component, "name", "")).upper() != "VEVENT":
            continue
        entry = _to_entry(component, default_tz)
        if entry is not None:
            entries.append(entry)
    return entries
