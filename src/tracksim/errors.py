"""Exception hierarchy.

Everything raised here is fatal when it happens during startup.  Once the
tick loop is running only SinkError is expected, and the loop logs it and
carries on.
"""

from __future__ import annotations


class TracksimError(Exception):
    """Base class for all tracksim errors."""


class PathSourceError(TracksimError):
    """The path collection could not be read or understood."""


class GeometryError(PathSourceError):
    """A path geometry is malformed (fewer than two coordinates, bad pair)."""


class SinkError(TracksimError):
    """Talking to the telemetry sink failed."""


class SinkUnavailableError(SinkError):
    """The sink did not answer the startup ping."""
