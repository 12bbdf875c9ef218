"""Load tracks from GeoJSON (RFC 7946) using stdlib json.

Handles a FeatureCollection or a single Feature whose geometries are
LineStrings.  Coordinates are already in [lng, lat] order.  Unlike a map
layer import, a bad track file is fatal: the simulation cannot start
without every declared path, so problems raise PathSourceError instead of
being skipped.
"""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

from loguru import logger

from tracksim.errors import GeometryError, PathSourceError
from tracksim.geo.geometry import validate_coordinates
from tracksim.layers.track import Track


def load_tracks(path: str | Path) -> list[Track]:
    """Read and parse a track file.  Raises PathSourceError on any problem."""
    path = Path(path).expanduser()
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PathSourceError(f"Cannot read track file {path}: {e}") from e
    tracks = parse_tracks(raw)
    logger.info(f"Loaded {len(tracks)} tracks from {path}")
    return tracks


def parse_tracks(geojson_string: str) -> list[Track]:
    """Parse a GeoJSON string into tracks, in declaration order."""
    try:
        data = json.loads(geojson_string)
    except (json.JSONDecodeError, TypeError) as e:
        raise PathSourceError(f"Track file is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise PathSourceError("Track file must be a GeoJSON object")

    if data.get("type") == "FeatureCollection":
        raw_features = data.get("features")
        if not isinstance(raw_features, list):
            raise PathSourceError("FeatureCollection has no 'features' list")
    elif data.get("type") == "Feature":
        raw_features = [data]
    else:
        raise PathSourceError(f"Unsupported GeoJSON type: {data.get('type')!r}")

    if not raw_features:
        raise PathSourceError("Track file contains no features")

    parsed = [_parse_feature(raw, idx) for idx, raw in enumerate(raw_features)]

    # Explicit ids must be unique; positional defaults yield to them
    explicit: set[str] = set()
    for track, has_id in parsed:
        if not has_id:
            continue
        if track.track_id in explicit:
            raise PathSourceError(f"Duplicate track id {track.track_id!r}")
        explicit.add(track.track_id)

    taken = set(explicit)
    tracks: list[Track] = []
    for track, has_id in parsed:
        if not has_id and track.track_id in taken:
            base = track.track_id
            n = 2
            while f"{base}-{n}" in taken:
                n += 1
            track = replace(track, track_id=f"{base}-{n}")
            logger.warning(f"Feature {base} has no id and {base!r} is taken; using {track.track_id!r}")
        taken.add(track.track_id)
        tracks.append(track)
    return tracks


def _parse_feature(raw: dict, idx: int) -> tuple[Track, bool]:
    """Parse a single GeoJSON Feature dict into a Track.

    Also returns whether the feature carried its own id.
    """
    if not isinstance(raw, dict):
        raise PathSourceError(f"Feature {idx} is not an object")

    geometry = raw.get("geometry")
    if not isinstance(geometry, dict):
        raise PathSourceError(f"Feature {idx} has no geometry")

    geom_type = geometry.get("type", "")
    if geom_type != "LineString":
        raise PathSourceError(f"Feature {idx} geometry is {geom_type!r}, expected 'LineString'")

    try:
        coordinates = validate_coordinates(geometry.get("coordinates") or [])
    except GeometryError as e:
        raise GeometryError(f"Feature {idx}: {e}") from e

    properties = raw.get("properties") or {}
    if not isinstance(properties, dict):
        properties = {}

    feature_id = raw.get("id")
    track_id = str(idx) if feature_id is None else str(feature_id)

    return Track(track_id=track_id, coordinates=coordinates, properties=properties), feature_id is not None
