"""Data models for vehicle telemetry."""

from pyhunter.models._base import HunterBaseModel
from pyhunter.models.enums import FollowState, MapStyleKey, PositionSource, SourceMode, TransportState
from pyhunter.models.messages import (
    NavSatFix,
    NavSatFixList,
    Odometry,
    parse_fix_message,
    parse_odometry_message,
    parse_path_message,
)
from pyhunter.models.pose import Pose
from pyhunter.models.status import ActuatorState, VehicleStatus

__all__ = [
    "ActuatorState",
    "FollowState",
    "HunterBaseModel",
    "MapStyleKey",
    "NavSatFix",
    "NavSatFixList",
    "Odometry",
    "Pose",
    "PositionSource",
    "SourceMode",
    "TransportState",
    "VehicleStatus",
    "parse_fix_message",
    "parse_odometry_message",
    "parse_path_message",
]
