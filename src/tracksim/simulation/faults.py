"""Fault injection — timestamp jitter and dropped updates.

Both let a downstream consumer be exercised against late, out-of-order
and missing events.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta

from loguru import logger


def jitter_timestamp(now: datetime, window_ms: float, rng: random.Random) -> datetime | None:
    """Return ``now`` minus a uniform random offset in [0, window_ms).

    Returns None when jitter is disabled (window_ms <= 0).
    """
    if window_ms <= 0:
        return None
    offset_ms = rng.random() * window_ms
    return now - timedelta(milliseconds=offset_ms)


class OmissionPolicy:
    """Drops one entity from the batch for a short outage window.

    Cycle: pick one index uniformly at random, omit it for
    ``window_ticks`` consecutive ticks, then emit full batches for
    ``recovery_ticks`` ticks, then pick again.
    """

    def __init__(self, window_ticks: int = 10, recovery_ticks: int = 10) -> None:
        if window_ticks < 1:
            raise ValueError("window_ticks must be >= 1")
        if recovery_ticks < 0:
            raise ValueError("recovery_ticks must be >= 0")
        self.window_ticks = window_ticks
        self.recovery_ticks = recovery_ticks
        self._omitted: int | None = None
        self._remaining = 0     # ticks left in the current outage
        self._recovering = 0    # full-batch ticks left before the next outage

    @property
    def omitted_index(self) -> int | None:
        return self._omitted

    def next_omitted(self, entity_count: int, rng: random.Random) -> int | None:
        """Advance the cycle by one tick and return the index to drop, if any."""
        if entity_count <= 0:
            return None

        if self._remaining > 0:
            self._remaining -= 1
            if self._remaining == 0:
                self._recovering = self.recovery_ticks
            return self._omitted

        if self._recovering > 0:
            self._recovering -= 1
            self._omitted = None
            return None

        self._omitted = rng.randrange(entity_count)
        self._remaining = self.window_ticks - 1
        if self._remaining == 0:
            self._recovering = self.recovery_ticks
        logger.debug(f"Omitting entity #{self._omitted} for {self.window_ticks} ticks")
        return self._omitted
