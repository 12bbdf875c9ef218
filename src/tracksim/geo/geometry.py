"""Polyline geometry — arc length, interpolation along a path, heading.

All coordinates are in GeoJSON order: (lng, lat).  Segment lengths are
great-circle (haversine) distances; positions inside a segment are linearly
interpolated in lng/lat, which is accurate enough at the segment sizes a
track file contains.

Convention:
    - Heading 0 = North, clockwise in degrees, range [0, 360)
    - Heading is a planar approximation: the east component is scaled by
      cos(latitude) so it matches the local metric, no geodesic math.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from tracksim.errors import GeometryError

# Mean earth radius in meters, the value GeoJSON tooling uses
EARTH_RADIUS_M = 6_371_008.8

Coordinate = tuple[float, float]


class DistanceUnit(str, Enum):
    """Distance units a speed or a path length can be expressed in."""

    METERS = "meters"
    KILOMETERS = "kilometers"
    MILES = "miles"
    NAUTICAL_MILES = "nauticalmiles"
    FEET = "feet"
    YARDS = "yards"
    DEGREES = "degrees"
    RADIANS = "radians"

    @property
    def per_radian(self) -> float:
        """How many of this unit make up one radian of great-circle arc."""
        return _UNITS_PER_RADIAN[self]


_UNITS_PER_RADIAN: dict[DistanceUnit, float] = {
    DistanceUnit.METERS: EARTH_RADIUS_M,
    DistanceUnit.KILOMETERS: EARTH_RADIUS_M / 1000.0,
    DistanceUnit.MILES: EARTH_RADIUS_M / 1609.344,
    DistanceUnit.NAUTICAL_MILES: EARTH_RADIUS_M / 1852.0,
    DistanceUnit.FEET: EARTH_RADIUS_M * 3.28084,
    DistanceUnit.YARDS: EARTH_RADIUS_M * 1.0936,
    DistanceUnit.DEGREES: 180.0 / math.pi,
    DistanceUnit.RADIANS: 1.0,
}


def validate_coordinates(coordinates: Sequence) -> tuple[Coordinate, ...]:
    """Return coordinates as a tuple of (lng, lat) floats.

    Extra elements (altitude) are dropped.  Raises GeometryError when there
    are fewer than two points or a point is not a pair of finite numbers.
    """
    if isinstance(coordinates, (str, bytes)) or not isinstance(coordinates, Sequence):
        raise GeometryError(f"coordinates must be a sequence, got {type(coordinates).__name__}")
    if len(coordinates) < 2:
        raise GeometryError(f"a path needs at least 2 coordinates, got {len(coordinates)}")

    out: list[Coordinate] = []
    for idx, point in enumerate(coordinates):
        if not isinstance(point, Sequence) or isinstance(point, (str, bytes)) or len(point) < 2:
            raise GeometryError(f"coordinate {idx} is not a [lng, lat] pair: {point!r}")
        try:
            lng, lat = float(point[0]), float(point[1])
        except (TypeError, ValueError) as e:
            raise GeometryError(f"coordinate {idx} is not numeric: {point!r}") from e
        if not (math.isfinite(lng) and math.isfinite(lat)):
            raise GeometryError(f"coordinate {idx} is not finite: {point!r}")
        out.append((lng, lat))
    return tuple(out)


def segment_lengths(coordinates: Sequence[Coordinate], unit: DistanceUnit) -> np.ndarray:
    """Haversine length of every segment, in ``unit``."""
    arr = np.radians(np.asarray(coordinates, dtype=float)[:, :2])
    lng, lat = arr[:, 0], arr[:, 1]
    dlat = np.diff(lat)
    dlng = np.diff(lng)
    a = np.sin(dlat / 2.0) ** 2 + np.cos(lat[:-1]) * np.cos(lat[1:]) * np.sin(dlng / 2.0) ** 2
    a = np.clip(a, 0.0, 1.0)
    arc = 2.0 * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))
    return arc * DistanceUnit(unit).per_radian


def path_length(coordinates: Sequence[Coordinate], unit: DistanceUnit) -> float:
    """Total arc length of the polyline in ``unit``."""
    return float(segment_lengths(coordinates, unit).sum())


def point_at_distance(
    coordinates: Sequence[Coordinate],
    distance: float,
    unit: DistanceUnit,
) -> Coordinate:
    """Point reached after walking ``distance`` from the first vertex."""
    return PathGeometry.build(coordinates, unit).point_at(distance)


def bearing(origin: Coordinate, destination: Coordinate) -> float | None:
    """Planar heading from origin to destination in degrees.

    Returns None when the two points coincide (no direction of travel).
    """
    lng0, lat0 = origin
    lng1, lat1 = destination
    dx = (lng1 - lng0) * math.cos(math.radians((lat0 + lat1) / 2.0))
    dy = lat1 - lat0
    if dx == 0.0 and dy == 0.0:
        return None
    return math.degrees(math.atan2(dx, dy)) % 360.0


def display_heading(heading: float) -> float:
    """Counter-clockwise variant of a heading, for map widgets that rotate
    markers the other way.  Not a bearing; keep the raw value alongside."""
    return (360.0 - heading) % 360.0


@dataclass(frozen=True)
class PathGeometry:
    """A polyline with its cumulative arc lengths computed once.

    Attributes:
        coordinates: (lng, lat) vertices, at least two.
        unit: Distance unit for lengths and lookups.
        cumulative: Distance from the first vertex to every vertex.
    """

    coordinates: tuple[Coordinate, ...]
    unit: DistanceUnit
    cumulative: np.ndarray = field(repr=False, compare=False)

    @classmethod
    def build(cls, coordinates: Sequence, unit: DistanceUnit | str) -> PathGeometry:
        coords = validate_coordinates(coordinates)
        unit = DistanceUnit(unit)
        lengths = segment_lengths(coords, unit)
        cumulative = np.concatenate(([0.0], np.cumsum(lengths)))
        return cls(coordinates=coords, unit=unit, cumulative=cumulative)

    @property
    def length(self) -> float:
        return float(self.cumulative[-1])

    @property
    def origin(self) -> Coordinate:
        return self.coordinates[0]

    @property
    def end(self) -> Coordinate:
        return self.coordinates[-1]

    @property
    def tolerance(self) -> float:
        """Slack for floating-point error when comparing against length."""
        return 1e-9 * max(1.0, self.length)

    def reaches_end(self, distance: float) -> bool:
        return distance >= self.length - self.tolerance

    def reversed(self) -> PathGeometry:
        """The same polyline walked from its last vertex to its first."""
        return PathGeometry.build(self.coordinates[::-1], self.unit)

    def point_at(self, distance: float) -> Coordinate:
        """Interpolated point ``distance`` units along the path.

        Distances a rounding error outside [0, length] are clamped;
        anything further out is a caller bug and raises ValueError.
        """
        total = self.length
        tolerance = self.tolerance
        if distance < -tolerance or distance > total + tolerance:
            raise ValueError(f"distance {distance} outside path length [0, {total}]")
        distance = min(max(distance, 0.0), total)
        if distance >= total:
            return self.end

        # Index of the segment whose start is the last vertex at or before distance
        idx = int(np.searchsorted(self.cumulative, distance, side="right")) - 1
        idx = min(max(idx, 0), len(self.coordinates) - 2)
        start = float(self.cumulative[idx])
        seg = float(self.cumulative[idx + 1]) - start
        lng0, lat0 = self.coordinates[idx]
        if seg <= 0.0:
            return (lng0, lat0)
        frac = (distance - start) / seg
        lng1, lat1 = self.coordinates[idx + 1]
        return (lng0 + (lng1 - lng0) * frac, lat0 + (lat1 - lat0) * frac)
