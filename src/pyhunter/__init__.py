"""pyhunter - Telemetry-to-map synchronization engine for Hunter ground vehicles."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyhunter")
except PackageNotFoundError:
    __version__ = "0+local"
from pyhunter.config import HunterConfig
from pyhunter.engine import HunterEngine
from pyhunter.exceptions import (
    HunterConfigError,
    HunterError,
    HunterTransportError,
    MalformedSampleError,
    ProjectionOutOfRangeError,
    RenderSurfaceUnavailableError,
)
from pyhunter.geo import GeoPoint, LocalOffset, project, unproject
from pyhunter.models import (
    ActuatorState,
    FollowState,
    MapStyleKey,
    Pose,
    PositionSource,
    SourceMode,
    TransportState,
    VehicleStatus,
)

__all__ = [
    "__version__",
    "ActuatorState",
    "FollowState",
    "GeoPoint",
    "HunterConfig",
    "HunterConfigError",
    "HunterEngine",
    "HunterError",
    "HunterTransportError",
    "LocalOffset",
    "MalformedSampleError",
    "MapStyleKey",
    "Pose",
    "PositionSource",
    "ProjectionOutOfRangeError",
    "RenderSurfaceUnavailableError",
    "SourceMode",
    "TransportState",
    "VehicleStatus",
    "project",
    "unproject",
]
