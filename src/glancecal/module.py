from __future__ import annotations
from datetime import datetime, timezone, tzinfo
import logging
import threading
from typing import Callable, List, Optional, Sequence, Tuple

from .aggregator import load_events
from .config import AppConfig, resolve_timezone
from .fetcher import CalendarSourceFetcher, SourceError
from .models import Event
from .render import MarkupRenderer, RenderError
from .scheduler import RefreshScheduler
from .sinks import HtmlFileSink, ImageSink, RenderSink

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class CalendarModule:
    """Owns the current event list and the scheduler that keeps it fresh.

    ``start`` does one synchronous refresh and render, so the first display is
    never waiting on a tick, then hands off to the scheduler thread. Setup
    errors reach the caller; refresh and render failures are logged and the
    last good event list (empty before the first success) stays on display.
    """

    def __init__(
        self,
        cfg: AppConfig,
        sinks: Optional[Sequence[RenderSink]] = None,
        fetcher: Optional[CalendarSourceFetcher] = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.cfg = cfg
        self._sinks: List[RenderSink] = list(sinks) if sinks is not None else []
        self._build_sinks = sinks is None
        self._fetcher = fetcher
        self._now = now
        self._events: Tuple[Event, ...] = ()
        self._scheduler: Optional[RefreshScheduler] = None
        self._thread: Optional[threading.Thread] = None
        self._stopped = False
        self.tz: Optional[tzinfo] = None

    @property
    def events(self) -> Tuple[Event, ...]:
        return self._events

    def _setup(self) -> None:
        agg = self.cfg.aggregation
        out = self.cfg.output
        self.tz = resolve_timezone(agg.timezone)

        if self._fetcher is None:
            self._fetcher = CalendarSourceFetcher(
                timeout=agg.request_timeout.total_seconds(),
                default_tz=self.tz,
            )

        if self._build_sinks:
            if out.html:
                renderer = MarkupRenderer(template_path=out.template or None, css_path=out.css or None)
                html_sink = HtmlFileSink(out.html, renderer)
                html_sink.load_css(renderer.css)
                self._sinks.append(html_sink)
            if out.image or out.inky:
                self._sinks.append(ImageSink(
                    self.tz,
                    width=out.width,
                    height=out.height,
                    path=out.image,
                    inky=out.inky,
                    rotate_degrees=out.rotate,
                    border=out.border,
                ))
        if not self._sinks:
            logger.warning("No output configured; events will be fetched but not displayed")

    def load(self) -> None:
        """Fetch and aggregate all sources, replacing the event list on success."""
        if self._fetcher is None or self.tz is None:
            raise RuntimeError("calendar module used before setup")
        events = load_events(self._fetcher, self.cfg.aggregation, self.tz, self._now())
        # Single reference swap; readers see either the old or the new tuple.
        self._events = tuple(events)

    def render(self) -> None:
        events = self._events
        now = self._now()
        for sink in self._sinks:
            sink.render(events, now)

    def _refresh_tick(self) -> None:
        try:
            self.load()
        except SourceError as exc:
            logger.error("Could not load events url=%s error=%s", exc.url, exc)

    def _render_tick(self) -> None:
        try:
            self.render()
        except RenderError as exc:
            logger.error("Could not render calendar data error=%s", exc)

    def run_once(self) -> None:
        self._setup()
        try:
            self.load()
            self.render()
        finally:
            self._close_fetcher()

    def start(self) -> None:
        self._setup()
        # A source that is down at boot leaves the list empty until a later tick.
        self._refresh_tick()
        self._render_tick()

        agg = self.cfg.aggregation
        self._scheduler = RefreshScheduler(
            self._refresh_tick,
            self._render_tick,
            refresh_interval=agg.interval.total_seconds(),
            render_interval=agg.render_interval.total_seconds(),
        )
        self._thread = threading.Thread(target=self._scheduler.run, name="glancecal-scheduler", daemon=True)
        self._thread.start()
        logger.info("Calendar module started sources=%d", len(agg.calendars))

    def stop(self, timeout: Optional[float] = None) -> None:
        if self._stopped:
            return
        self._stopped = True
        if self._scheduler is not None:
            self._scheduler.stop()
        if self._thread is not None:
            self._thread.join(timeout)
        self._close_fetcher()
        logger.info("Calendar module stopped")

    def wait(self) -> None:
        # Short joins keep the main thread responsive to signals.
        while self._thread is not None and self._thread.is_alive():
            self._thread.join(1.0)

    def _close_fetcher(self) -> None:
        if self._fetcher is not None:
            self._fetcher.close()
