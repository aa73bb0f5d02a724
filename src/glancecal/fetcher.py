from __future__ import annotations
from datetime import datetime, timezone, tzinfo
import logging
from typing import List, Optional

import requests

from .ical import CalendarParseError, parse_calendar
from .models import RawCalendarEntry

logger = logging.getLogger(__name__)

BODY_SNIPPET_CHARS = 200


class SourceError(RuntimeError):
    """Raised when a single calendar source cannot be loaded."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{message}: {url!r}")
        self.url = url


class FetchError(SourceError):
    """Network failure or non-success HTTP status for a calendar source."""

    def __init__(self, url: str, message: str, status: Optional[int] = None, body: str = "") -> None:
        if status is not None:
            detail = f"{status} {body}".strip()
            message = f"{message} ({detail})"
        super().__init__(url, message)
        self.status = status
        self.body = body


class ParseError(SourceError):
    """The calendar payload of a source was rejected by the parser."""


def _request_url(url: str) -> str:
    if url.lower().startswith("webcal://"):
        return "https://" + url[len("webcal://"):]
    return url


class CalendarSourceFetcher:
    """Loads one calendar feed per call and returns its window-bounded entries."""

    def __init__(
        self,
        timeout: float = 30.0,
        default_tz: tzinfo = timezone.utc,
        user_agent: str = "glancecal/1.0",
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = timeout
        self.default_tz = default_tz
        self._session = session or requests.Session()
        self._session.headers.update({
            "User-Agent": user_agent,
            "Accept": "text/calendar,text/plain;q=0.9,*/*;q=0.8",
        })

    def fetch(
        self,
        url: str,
        window_start: datetime,
        window_end: datetime,
        source_cap: int = 0,
    ) -> List[RawCalendarEntry]:
        logger.debug("Fetching calendar url=%s", url)
        try:
            resp = self._session.get(_request_url(url), timeout=self.timeout)
        except requests.RequestException as exc:
            raise FetchError(url, f"requesting calendar failed: {exc}") from exc

        try:
            if resp.status_code != 200:
                raise FetchError(
                    url,
                    "fetching calendar failed",
                    status=resp.status_code,
                    body=resp.text[:BODY_SNIPPET_CHARS],
                )
            payload = resp.content
        finally:
            resp.close()

        try:
            entries = parse_calendar(payload, window_start, window_end, self.default_tz)
        except CalendarParseError as exc:
            raise ParseError(url, f"parsing calendar failed: {exc}") from exc

        # Truncation keeps the parser's order; the global sort happens later.
        if source_cap > 0 and len(entries) > source_cap:
            entries = entries[:source_cap]
        logger.debug("Loaded %d entries url=%s", len(entries), url)
        return entries

    def close(self) -> None:
        self._session.close()
