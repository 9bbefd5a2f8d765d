"""Enumerations shared by the engine components."""

from __future__ import annotations

from enum import StrEnum


class SourceMode(StrEnum):
    """Which telemetry source variant is active."""

    SIMULATED = "simulated"
    LIVE = "live"


class PositionSource(StrEnum):
    """Live position topic flavour.

    ``ODOMETRY`` carries a local-frame offset that is projected around the
    origin; ``GPS`` carries a geographic fix used as-is.
    """

    ODOMETRY = "odometry"
    GPS = "gps"


class MapStyleKey(StrEnum):
    DARK = "dark"
    STREET = "street"
    SATELLITE = "satellite"


class FollowState(StrEnum):
    FOLLOWING = "following"
    FREE = "free"


class TransportState(StrEnum):
    """Connection lifecycle events emitted by a pub/sub transport."""

    CONNECTED = "connected"
    ERROR = "error"
    CLOSED = "closed"
