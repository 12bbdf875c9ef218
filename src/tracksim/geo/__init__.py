"""Geometry service — path length, point along a path, heading."""

from tracksim.geo.geometry import (
    Coordinate,
    DistanceUnit,
    PathGeometry,
    bearing,
    display_heading,
    path_length,
    point_at_distance,
    validate_coordinates,
)

__all__ = [
    "Coordinate",
    "DistanceUnit",
    "PathGeometry",
    "bearing",
    "display_heading",
    "path_length",
    "point_at_distance",
    "validate_coordinates",
]
