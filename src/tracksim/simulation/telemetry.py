"""TelemetrySample — one entity's position for one tick, and its sink document."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from tracksim.geo.geometry import Coordinate


def format_timestamp(ts: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a trailing Z."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class TelemetrySample:
    """Ephemeral sample produced per entity per tick."""

    entity_id: str
    position: Coordinate
    speed: float
    timestamp: datetime
    heading: float | None = None
    display_heading: float | None = None
    jittered_timestamp: datetime | None = None

    def to_document(self) -> dict:
        """Sink document.  Optional fields are left out when unset."""
        doc: dict = {
            "location": [self.position[0], self.position[1]],
            "entity_id": self.entity_id,
            "speed": self.speed,
            "@timestamp": format_timestamp(self.timestamp),
        }
        if self.heading is not None:
            doc["heading"] = round(self.heading, 3)
        if self.display_heading is not None:
            doc["display_heading"] = round(self.display_heading, 3)
        if self.jittered_timestamp is not None:
            doc["jittered_timestamp"] = format_timestamp(self.jittered_timestamp)
        return doc
