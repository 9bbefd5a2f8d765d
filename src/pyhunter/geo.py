"""Local tangent-plane projection.

Positions reported in a local east/north frame (meters) are converted to
longitude/latitude with a flat-earth approximation around a fixed origin.
There is no curvature correction: results are only meaningful for offsets of
up to a few tens of kilometers from the origin.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pyhunter.exceptions import ProjectionOutOfRangeError

METERS_PER_DEGREE = 111_320.0


def _require_finite(value: float) -> float:
    if not math.isfinite(value):
        raise ValueError("coordinate must be finite")
    return value


class GeoPoint(BaseModel):
    """A WGS84 position. Out-of-range values are rejected, never clamped."""

    model_config = ConfigDict(frozen=True)

    longitude: float = Field(..., ge=-180.0, le=180.0)
    latitude: float = Field(..., ge=-90.0, le=90.0)

    @field_validator("longitude", "latitude", mode="after")
    @classmethod
    def _finite(cls, value: float) -> float:
        return _require_finite(value)

    def as_lng_lat(self) -> list[float]:
        """GeoJSON coordinate order."""
        return [self.longitude, self.latitude]

    @classmethod
    def from_lng_lat(cls, coords: Any) -> GeoPoint:
        lng, lat = coords
        return cls(longitude=lng, latitude=lat)


class LocalOffset(BaseModel):
    """Offset in meters in the local tangent plane (x east, y north)."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float

    @field_validator("x", "y", mode="after")
    @classmethod
    def _finite(cls, value: float) -> float:
        return _require_finite(value)


def meters_per_degree_lng(latitude: float) -> float:
    return math.cos(math.radians(latitude)) * METERS_PER_DEGREE


def project(offset: LocalOffset, origin: GeoPoint) -> GeoPoint:
    """Project a local offset around *origin* into geographic coordinates.

    Raises :class:`ProjectionOutOfRangeError` when the origin sits on a pole
    or the result leaves the valid longitude/latitude range.
    """
    per_lng = meters_per_degree_lng(origin.latitude)
    # cos(90°) is ~6e-17 rather than 0 in floating point.
    if abs(per_lng) < 1e-9:
        raise ProjectionOutOfRangeError(
            "Cannot project around a polar origin",
            longitude=origin.longitude,
            latitude=origin.latitude,
        )
    longitude = origin.longitude + offset.x / per_lng
    latitude = origin.latitude + offset.y / METERS_PER_DEGREE
    try:
        return GeoPoint(longitude=longitude, latitude=latitude)
    except ValidationError as exc:
        raise ProjectionOutOfRangeError(
            f"Projected position ({longitude}, {latitude}) is out of range",
            longitude=longitude,
            latitude=latitude,
        ) from exc


def unproject(point: GeoPoint, origin: GeoPoint) -> LocalOffset:
    """Inverse of :func:`project` (same approximation solved backward)."""
    per_lng = meters_per_degree_lng(origin.latitude)
    if abs(per_lng) < 1e-9:
        raise ProjectionOutOfRangeError(
            "Cannot unproject around a polar origin",
            longitude=origin.longitude,
            latitude=origin.latitude,
        )
    return LocalOffset(
        x=(point.longitude - origin.longitude) * per_lng,
        y=(point.latitude - origin.latitude) * METERS_PER_DEGREE,
    )


def heading_from_enu_yaw(yaw: float) -> float:
    """Convert an ENU yaw (radians, CCW from east) to a compass heading.

    Returns degrees clockwise from north in ``[0, 360)``.
    """
    heading = (90.0 - math.degrees(yaw)) % 360.0
    # Float modulo of a tiny negative value rounds up to 360.0.
    return 0.0 if heading >= 360.0 else heading


def heading_from_quaternion(x: float, y: float, z: float, w: float) -> float:
    yaw = math.atan2(2.0 * (w * z + x * y), 1.0 - 2.0 * (y * y + z * z))
    return heading_from_enu_yaw(yaw)
