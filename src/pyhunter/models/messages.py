"""Position and path message models.

Covers the three position-bearing message types consumed from the live
feed:

* ``sensor_msgs/NavSatFix`` -- geographic fix, used as-is.
* ``nav_msgs/Odometry`` -- local-frame position, projected around the origin.
* ``artemis_msgs/msg/NavSatFixList`` -- planned path as a list of fixes.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar

from pydantic import Field, ValidationError, field_validator

from pyhunter.exceptions import MalformedSampleError
from pyhunter.geo import GeoPoint, LocalOffset, heading_from_quaternion, project
from pyhunter.ingestion.normalize import ros_stamp_seconds
from pyhunter.models._base import HunterBaseModel
from pyhunter.models.pose import Pose

_logger = logging.getLogger(__name__)


class NavSatFix(HunterBaseModel):
    _FLOAT_FIELDS: ClassVar[tuple[str, ...]] = ("latitude", "longitude", "altitude")

    latitude: float | None = None
    longitude: float | None = None
    altitude: float | None = None
    header: dict[str, Any] = Field(default_factory=dict)

    @field_validator("header", mode="before")
    @classmethod
    def _coerce_header(cls, value: Any) -> dict[str, Any]:
        return value if isinstance(value, dict) else {}

    @property
    def stamp(self) -> float | None:
        return ros_stamp_seconds(self.header)

    def to_geo_point(self) -> GeoPoint:
        if self.latitude is None or self.longitude is None:
            raise MalformedSampleError("NavSatFix without latitude/longitude")
        try:
            return GeoPoint(longitude=self.longitude, latitude=self.latitude)
        except ValidationError as exc:
            raise MalformedSampleError(
                f"NavSatFix out of range: ({self.longitude}, {self.latitude})"
            ) from exc

    def to_pose(self) -> Pose:
        return Pose(position=self.to_geo_point(), source_timestamp=self.stamp)


class Odometry(HunterBaseModel):
    """Flattened ``nav_msgs/Odometry`` (only the planar pose is kept)."""

    _FLOAT_FIELDS: ClassVar[tuple[str, ...]] = ("x", "y", "qx", "qy", "qz", "qw")

    x: float | None = None
    y: float | None = None
    qx: float | None = None
    qy: float | None = None
    qz: float | None = None
    qw: float | None = None
    stamp: float | None = None

    @classmethod
    def from_message(cls, message: dict[str, Any]) -> Odometry:
        pose = message.get("pose")
        inner = pose.get("pose") if isinstance(pose, dict) else None
        position: dict[str, Any] = {}
        orientation: dict[str, Any] = {}
        if isinstance(inner, dict):
            if isinstance(inner.get("position"), dict):
                position = inner["position"]
            if isinstance(inner.get("orientation"), dict):
                orientation = inner["orientation"]
        return cls.model_validate(
            {
                "x": position.get("x"),
                "y": position.get("y"),
                "qx": orientation.get("x"),
                "qy": orientation.get("y"),
                "qz": orientation.get("z"),
                "qw": orientation.get("w"),
                "stamp": ros_stamp_seconds(message.get("header")),
                "raw": message,
            }
        )

    @property
    def heading(self) -> float | None:
        if None in (self.qx, self.qy, self.qz, self.qw):
            return None
        # All-zero quaternion is the "unset" orientation.
        if self.qx == self.qy == self.qz == self.qw == 0:
            return None
        return heading_from_quaternion(self.qx, self.qy, self.qz, self.qw)  # type: ignore[arg-type]

    def to_pose(self, origin: GeoPoint) -> Pose:
        """Project onto *origin*.

        Raises :class:`MalformedSampleError` when x/y are missing and lets
        :class:`ProjectionOutOfRangeError` propagate to the caller.
        """
        if self.x is None or self.y is None:
            raise MalformedSampleError("Odometry without pose.pose.position x/y")
        position = project(LocalOffset(x=self.x, y=self.y), origin)
        return Pose(position=position, source_timestamp=self.stamp, heading=self.heading)


class NavSatFixList(HunterBaseModel):
    fixes: tuple[NavSatFix, ...] = Field(default_factory=tuple)

    @field_validator("fixes", mode="before")
    @classmethod
    def _coerce_fixes(cls, value: Any) -> tuple[NavSatFix, ...]:
        if not isinstance(value, (list, tuple)):
            return ()
        return tuple(NavSatFix.model_validate(item) for item in value if isinstance(item, dict))

    def to_points(self) -> list[GeoPoint]:
        """Valid fixes in order; unusable fixes are skipped."""
        points: list[GeoPoint] = []
        for index, fix in enumerate(self.fixes):
            try:
                points.append(fix.to_geo_point())
            except MalformedSampleError:
                _logger.debug("Skipping malformed path fix index=%s", index)
        return points


def parse_path_message(message: Any) -> list[GeoPoint] | None:
    """Return the path points, or ``None`` when *message* has no ``fixes`` list.

    ``None`` means "not a path message, ignore"; an empty list means "clear".
    """
    if not isinstance(message, dict) or not isinstance(message.get("fixes"), (list, tuple)):
        return None
    return NavSatFixList.model_validate(message).to_points()


def parse_fix_message(message: Any) -> Pose:
    if not isinstance(message, dict):
        raise MalformedSampleError("NavSatFix message is not an object")
    return NavSatFix.model_validate(message).to_pose()


def parse_odometry_message(message: Any, origin: GeoPoint) -> Pose:
    if not isinstance(message, dict):
        raise MalformedSampleError("Odometry message is not an object")
    return Odometry.from_message(message).to_pose(origin)
