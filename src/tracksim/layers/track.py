"""Track — an immutable named polyline an entity travels along.

Coordinates are stored in GeoJSON convention: (lng, lat).
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Track:
    """A path definition loaded from the track file.

    Attributes:
        track_id: Stable identifier (feature id, or positional index).
        coordinates: (lng, lat) vertices, at least two.
        properties: Arbitrary key-value metadata from the source feature.
    """

    track_id: str
    coordinates: tuple[tuple[float, float], ...]
    properties: dict = field(default_factory=dict, compare=False)

    @property
    def name(self) -> str:
        return str(self.properties.get("name", self.track_id))
