"""Tests for tracksim.simulation.travel_state."""

import pytest

from tracksim.geo.geometry import DistanceUnit, PathGeometry
from tracksim.simulation.travel_state import Direction, TravelState

pytestmark = pytest.mark.unit


@pytest.fixture
def state():
    geom = PathGeometry.build([(0.0, 0.0), (0.0, 1.0), (1.0, 1.0)], DistanceUnit.DEGREES)
    return TravelState.for_geometry("bent", geom)


class TestDirection:

    def test_flip_round_trip(self):
        assert Direction.FORWARD.flipped() is Direction.REVERSED
        assert Direction.REVERSED.flipped() is Direction.FORWARD


class TestTravelState:

    def test_initial_values(self, state):
        assert state.distance_traveled == 0.0
        assert state.at_start is True
        assert state.direction is Direction.FORWARD
        assert state.last_update is None
        assert state.heading is None
        assert state.traversals == 0

    def test_last_position_starts_at_origin(self, state):
        assert state.last_position == (0.0, 0.0)

    def test_backward_is_reversed(self, state):
        assert state.backward.origin == (1.0, 1.0)
        assert state.backward.end == (0.0, 0.0)

    def test_geometry_follows_direction(self, state):
        assert state.geometry is state.forward
        state.direction = Direction.REVERSED
        assert state.geometry is state.backward

    def test_length_independent_of_direction(self, state):
        forward_len = state.length
        state.direction = Direction.REVERSED
        assert state.length == forward_len

    def test_reset(self, state):
        state.distance_traveled = 1.5
        state.at_start = False
        state.reset()
        assert state.distance_traveled == 0.0
        assert state.at_start is True
        assert state.direction is Direction.REVERSED
        assert state.traversals == 1

    def test_two_resets_return_forward(self, state):
        state.reset()
        state.reset()
        assert state.direction is Direction.FORWARD
        assert state.traversals == 2
