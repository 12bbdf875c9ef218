"""tracksim — synthetic fleet telemetry along GeoJSON tracks."""

__version__ = "0.1.0"
