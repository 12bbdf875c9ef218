"""Tests for tracksim.simulation.scheduler.PeriodicScheduler."""

import threading
import time

import pytest

from tracksim.simulation.scheduler import PeriodicScheduler

pytestmark = pytest.mark.unit


class TestPeriodicScheduler:

    def test_rejects_bad_period(self):
        with pytest.raises(ValueError):
            PeriodicScheduler(lambda: None, period_ms=0)

    def test_max_ticks(self):
        calls = []
        sched = PeriodicScheduler(lambda: calls.append(1), period_ms=1, max_ticks=5)
        sched.run()
        assert len(calls) == 5
        assert sched.ticks == 5
        assert not sched.running

    def test_stop_from_callback(self):
        sched = None
        calls = []

        def cb():
            calls.append(1)
            if len(calls) == 3:
                sched.stop()

        sched = PeriodicScheduler(cb, period_ms=1)
        sched.run()
        assert len(calls) == 3

    def test_stop_before_run(self):
        calls = []
        sched = PeriodicScheduler(lambda: calls.append(1), period_ms=1)
        sched.stop()
        sched.run()
        assert calls == []

    def test_callback_error_does_not_stop_loop(self):
        calls = []

        def cb():
            calls.append(1)
            raise RuntimeError("boom")

        sched = PeriodicScheduler(cb, period_ms=1, max_ticks=3)
        sched.run()
        assert len(calls) == 3

    def test_background_thread(self):
        ticked = threading.Event()
        sched = PeriodicScheduler(ticked.set, period_ms=5)
        sched.start()
        try:
            assert ticked.wait(2.0)
            assert sched.running
        finally:
            sched.stop()
        assert not sched.running

    def test_no_overlap(self):
        active = []
        overlaps = []

        def cb():
            if active:
                overlaps.append(1)
            active.append(1)
            time.sleep(0.005)
            active.pop()

        # Callback is slower than the period
        sched = PeriodicScheduler(cb, period_ms=1, max_ticks=5)
        sched.run()
        assert overlaps == []

    def test_overrun_does_not_catch_up(self):
        clock = [0.0]
        starts = []

        def cb():
            starts.append(clock[0])
            clock[0] += 0.25 if len(starts) == 1 else 0.0

        sched = PeriodicScheduler(cb, period_ms=100, max_ticks=3, monotonic=lambda: clock[0])
        sched.run()
        # First tick took 250 ms; the second starts immediately, not twice
        assert starts[:2] == [0.0, 0.25]
        assert len(starts) == 3

    def test_restart_after_slow_stop_does_not_overlap(self):
        entered = threading.Event()
        release = threading.Event()
        active = []
        overlaps = []

        def cb():
            if active:
                overlaps.append(1)
            active.append(1)
            entered.set()
            release.wait(2.0)
            active.pop()

        sched = PeriodicScheduler(cb, period_ms=1)
        sched.start()
        try:
            assert entered.wait(2.0)
            # Tick is blocked, so the join times out
            sched.stop(timeout=0.05)
            sched.start()
            assert sum(t.name == "sim-tick" for t in threading.enumerate()) == 1
        finally:
            release.set()
            sched.stop()
        assert overlaps == []
        assert not any(t.name == "sim-tick" for t in threading.enumerate())
