"""Path source — GeoJSON track files."""

from tracksim.layers.geojson import load_tracks, parse_tracks
from tracksim.layers.track import Track

__all__ = ["Track", "load_tracks", "parse_tracks"]
