"""Shared fixtures: a controllable clock, log capture, sample tracks."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from loguru import logger

from tracksim.layers.track import Track

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, ms: float) -> datetime:
        self.now = self.now + timedelta(milliseconds=ms)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted during the test."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def unit_track():
    """Straight line (0,0) -> (0,1): one degree long when measured in degrees."""
    return Track(track_id="line", coordinates=((0.0, 0.0), (0.0, 1.0)))


@pytest.fixture
def bent_track():
    """Two legs: north one degree, then east one degree along the equator-ish."""
    return Track(track_id="bent", coordinates=((0.0, 0.0), (0.0, 1.0), (1.0, 1.0)))
