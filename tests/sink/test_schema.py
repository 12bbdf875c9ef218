"""Tests for tracksim.sink.schema.build_schema."""

import pytest

from tracksim.simulation.telemetry import TelemetrySample
from tracksim.sink.schema import build_schema

pytestmark = pytest.mark.unit


class TestBuildSchema:

    def test_plain_mappings(self):
        body = build_schema()
        props = body["mappings"]["properties"]
        assert props["location"]["type"] == "geo_point"
        assert props["entity_id"] == {"type": "keyword"}
        assert props["@timestamp"] == {"type": "date"}
        assert "settings" not in body

    def test_time_series(self):
        body = build_schema(time_series=True)
        props = body["mappings"]["properties"]
        assert props["entity_id"]["time_series_dimension"] is True
        assert props["location"]["time_series_metric"] == "position"
        assert body["settings"]["index"] == {"mode": "time_series", "routing_path": ["entity_id"]}

    def test_covers_every_document_field(self):
        from datetime import datetime, timezone
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        sample = TelemetrySample("a", (0.0, 0.0), 1.0, now, heading=1.0,
                                 display_heading=359.0, jittered_timestamp=now)
        props = build_schema()["mappings"]["properties"]
        assert set(sample.to_document()) <= set(props)

    def test_fresh_dict_each_call(self):
        build_schema(time_series=True)
        assert "time_series_dimension" not in build_schema()["mappings"]["properties"]["entity_id"]
