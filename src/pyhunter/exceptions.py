"""Custom exception hierarchy for pyhunter."""

from __future__ import annotations


class HunterError(Exception):
    """Base exception for all pyhunter errors."""


class HunterConfigError(HunterError):
    """Invalid or unrecognized configuration."""


class MalformedSampleError(HunterError):
    """Telemetry message is missing the fields required to build a sample.

    Field-level problems are sanitized to ``None`` by the models; this is
    only raised when nothing usable (e.g. no position) can be extracted.
    """

    def __init__(self, message: str, *, topic: str = "") -> None:
        self.topic = topic
        super().__init__(message)


class ProjectionOutOfRangeError(HunterError):
    """Projected longitude/latitude fall outside valid geographic bounds."""

    def __init__(self, message: str, *, longitude: float, latitude: float) -> None:
        self.longitude = longitude
        self.latitude = latitude
        super().__init__(message)


class HunterTransportError(HunterError):
    """Pub/sub transport failure (connect, subscribe, network)."""

    def __init__(self, message: str, *, url: str = "") -> None:
        self.url = url
        super().__init__(message)


class RenderSurfaceUnavailableError(HunterError):
    """Raised by a surface factory when the map cannot be created (no WebGL, no container)."""
