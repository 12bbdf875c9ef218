"""Per-entity travel state — the only mutable simulation data.

One TravelState exists per track, created at startup and owned by the
TickEngine for the lifetime of the process.  Track definitions stay
immutable; everything that changes tick to tick lives here.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from tracksim.geo.geometry import Coordinate, PathGeometry


class Direction(str, Enum):
    """Which way along the track's coordinate order the entity travels."""

    FORWARD = "forward"
    REVERSED = "reversed"

    def flipped(self) -> Direction:
        return Direction.REVERSED if self is Direction.FORWARD else Direction.FORWARD


@dataclass
class TravelState:
    """Progress of one entity along its track.

    Attributes:
        track_id: Track this state belongs to.
        forward: Geometry in declaration order.
        backward: Same geometry walked end to start.
        distance_traveled: Distance covered in the current traversal,
            always within [0, length].
        last_position: Last emitted (lng, lat), used for heading.
        last_update: Time of the previous tick; None before the first.
        at_start: True when the next tick must emit the origin without
            moving (after init and after a bounce).
        direction: Current traversal direction.
        heading: Heading of the last emitted sample, None if unknown.
        traversals: Completed end-to-end traversals.
    """

    track_id: str
    forward: PathGeometry
    backward: PathGeometry
    distance_traveled: float = 0.0
    last_position: Coordinate | None = None
    last_update: datetime | None = None
    at_start: bool = True
    direction: Direction = Direction.FORWARD
    heading: float | None = None
    traversals: int = 0

    def __post_init__(self) -> None:
        if self.last_position is None:
            self.last_position = self.forward.origin

    @classmethod
    def for_geometry(cls, track_id: str, geometry: PathGeometry) -> TravelState:
        return cls(track_id=track_id, forward=geometry, backward=geometry.reversed())

    @property
    def length(self) -> float:
        return self.forward.length

    @property
    def geometry(self) -> PathGeometry:
        """Geometry ordered for the current direction."""
        return self.forward if self.direction is Direction.FORWARD else self.backward

    def reset(self) -> None:
        """End of path reached: start over from 0 on the reversed path."""
        self.distance_traveled = 0.0
        self.at_start = True
        self.direction = self.direction.flipped()
        self.traversals += 1
