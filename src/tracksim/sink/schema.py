"""Index schema for telemetry documents.

Fields match TelemetrySample.to_document().  The time-series variant turns
the index into an Elasticsearch TSDS: entity_id is the series dimension and
location the series metric.
"""

from __future__ import annotations


def build_schema(time_series: bool = False) -> dict:
    """Return the create-index body (mappings, plus settings for TSDS)."""
    properties: dict = {
        "location": {"type": "geo_point", "ignore_malformed": True},
        "entity_id": {"type": "keyword"},
        "heading": {"type": "float"},
        "display_heading": {"type": "float"},
        "speed": {"type": "float"},
        "@timestamp": {"type": "date"},
        "jittered_timestamp": {"type": "date"},
    }
    body: dict = {"mappings": {"properties": properties}}

    if time_series:
        properties["entity_id"]["time_series_dimension"] = True
        properties["location"]["time_series_metric"] = "position"
        body["settings"] = {
            "index": {
                "mode": "time_series",
                "routing_path": ["entity_id"],
            }
        }
    return body
