from types import SimpleNamespace

import pytest

from glancecal.scheduler import RefreshScheduler, SchedulerState, _next_deadline


def _simulate(minutes, stop_at_minute=None, refresh=None, render=None):
    clock = SimpleNamespace(now=0.0)
    ticks = []
    limit = minutes * 60
    stop_at = None if stop_at_minute is None else stop_at_minute * 60

    def wait(timeout):
        target = clock.now + timeout
        if stop_at is not None and target >= stop_at:
            clock.now = stop_at
            scheduler.stop()
            return True
        if target > limit:
            clock.now = limit
            scheduler.stop()
            return True
        clock.now = target
        return False

    def on_refresh():
        ticks.append(("refresh", clock.now))
        if refresh:
            refresh()

    def on_render():
        ticks.append(("render", clock.now))
        if render:
            render()

    scheduler = RefreshScheduler(
        on_refresh,
        on_render,
        refresh_interval=30 * 60,
        render_interval=60,
        clock=lambda: clock.now,
        wait=wait,
    )
    scheduler.run()
    return scheduler, ticks


def test_35_minutes_fire_one_refresh_and_35_renders():
    scheduler, ticks = _simulate(35)

    assert [t for t in ticks if t[0] == "refresh"] == [("refresh", 1800.0)]
    assert len([t for t in ticks if t[0] == "render"]) == 35
    assert scheduler.state is SchedulerState.STOPPED


def test_refresh_runs_before_render_when_both_are_due():
    _, ticks = _simulate(30)

    assert ticks[-2:] == [("refresh", 1800.0), ("render", 1800.0)]


def test_stop_at_minute_ten_halts_all_further_ticks():
    scheduler, ticks = _simulate(35, stop_at_minute=10)

    assert all(when < 600 for _, when in ticks)
    assert [name for name, _ in ticks] == ["render"] * 9
    assert scheduler.state is SchedulerState.STOPPED


def test_failing_ticks_do_not_end_the_loop(caplog):
    def broken():
        raise RuntimeError("template exploded")

    _, ticks = _simulate(5, render=broken)

    assert len(ticks) == 5
    assert "render tick failed" in caplog.text


def test_stop_before_run_fires_nothing():
    ticks = []
    scheduler = RefreshScheduler(lambda: ticks.append("refresh"), lambda: ticks.append("render"), 60, 60)
    scheduler.stop()

    scheduler.run()

    assert ticks == []
    assert scheduler.state is SchedulerState.STOPPED


def test_missed_deadlines_are_dropped():
    assert _next_deadline(60, 60, 60) == 120
    assert _next_deadline(60, 60, 250) == 300


def test_intervals_must_be_positive():
    with pytest.raises(ValueError):
        RefreshScheduler(lambda: None, lambda: None, 0, 60)


def test_scheduler_exposes_only_stop_as_control():
    scheduler = RefreshScheduler(lambda: None, lambda: None, 60, 60)

    assert not hasattr(scheduler, "stop_requested")
    scheduler.stop()
    scheduler.run()
    assert scheduler.state is SchedulerState.STOPPED
