"""PeriodicScheduler — fires a callback on a fixed period until stopped.

Single worker, no overlap: the period is measured start to start, and a
tick that overruns the period simply delays the next one.  ``stop()`` only
prevents further ticks; a tick that is already running always completes.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from loguru import logger


class PeriodicScheduler:
    """Calls ``callback()`` every ``period_ms`` milliseconds."""

    def __init__(
        self,
        callback: Callable[[], object],
        period_ms: float,
        max_ticks: int | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        if period_ms <= 0:
            raise ValueError(f"period_ms must be > 0, got {period_ms}")
        self._callback = callback
        self._period = period_ms / 1000.0
        self._max_ticks = max_ticks
        self._monotonic = monotonic
        self._stop = threading.Event()
        self._running = False
        self._thread: threading.Thread | None = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def period_ms(self) -> float:
        return self._period * 1000.0

    # -- Lifecycle ----------------------------------------------------------

    def run(self) -> None:
        """Run in the calling thread until stop() or max_ticks.

        A stop() that arrives before run() makes it return without ticking.
        """
        self._running = True
        logger.info(f"Scheduler started: period {self.period_ms:.0f} ms")
        next_at = self._monotonic()
        try:
            while not self._stop.is_set():
                try:
                    self._callback()
                except Exception:
                    logger.exception(f"Tick {self.ticks} failed")
                self.ticks += 1
                if self._max_ticks is not None and self.ticks >= self._max_ticks:
                    logger.info(f"Scheduler reached max ticks ({self._max_ticks})")
                    break
                next_at += self._period
                delay = next_at - self._monotonic()
                if delay < 0:
                    # Overran: start the next tick now, no catch-up burst
                    logger.debug(f"Tick overran period by {-delay * 1000:.0f} ms")
                    next_at = self._monotonic()
                    delay = 0.0
                if self._stop.wait(delay):
                    break
        finally:
            self._running = False
        logger.info(f"Scheduler stopped after {self.ticks} ticks")

    def start(self) -> None:
        """Run on a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, name="sim-tick", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 2.0) -> None:
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning(f"Tick thread still running {timeout} s after stop()")
            else:
                self._thread = None
