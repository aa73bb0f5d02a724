from __future__ import annotations
from enum import Enum
import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

Tick = Callable[[], None]


class SchedulerState(str, Enum):
    RUNNING = "running"
    STOPPED = "stopped"


def _next_deadline(deadline: float, interval: float, now: float) -> float:
    # Ticks that were missed while a slow tick ran are dropped, not replayed.
    missed = int((now - deadline) // interval) + 1
    return deadline + missed * interval


class RefreshScheduler:
    """Drives the refresh and render cadences from one control loop.

    Both ticks run on the thread that calls ``run``. ``stop`` may be called
    from any thread; it wins over any tick that is due at the same moment.
    """

    def __init__(
        self,
        refresh: Tick,
        render: Tick,
        refresh_interval: float,
        render_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        wait: Optional[Callable[[float], object]] = None,
    ) -> None:
        if refresh_interval <= 0 or render_interval <= 0:
            raise ValueError("scheduler intervals must be positive")
        self._refresh = refresh
        self._render = render
        self.refresh_interval = refresh_interval
        self.render_interval = render_interval
        self._clock = clock
        self._stop = threading.Event()
        self._wait = wait or self._stop.wait
        self.state = SchedulerState.RUNNING

    def stop(self) -> None:
        self._stop.set()

    def _tick(self, name: str, fn: Tick) -> None:
        try:
            fn()
        except Exception:
            logger.exception("Scheduler %s tick failed", name)

    def run(self) -> None:
        start = self._clock()
        next_refresh = start + self.refresh_interval
        next_render = start + self.render_interval

        while not self._stop.is_set():
            now = self._clock()
            due = min(next_refresh, next_render)
            if now < due:
                self._wait(due - now)
                continue

            if now >= next_refresh:
                self._tick("refresh", self._refresh)
                next_refresh = _next_deadline(next_refresh, self.refresh_interval, now)
                if self._stop.is_set():
                    break

            if now >= next_render:
                self._tick("render", self._render)
                next_render = _next_deadline(next_render, self.render_interval, now)

        self.state = SchedulerState.STOPPED
        logger.debug("Scheduler stopped")
