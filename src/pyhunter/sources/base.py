"""Common contract for telemetry source variants."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

from pyhunter.geo import GeoPoint
from pyhunter.models.enums import SourceMode
from pyhunter.models.pose import Pose
from pyhunter.models.status import VehicleStatus


@dataclass(frozen=True)
class SourceSink:
    """Callbacks a source delivers samples into, in receipt order."""

    on_pose: Callable[[Pose], None]
    on_status: Callable[[VehicleStatus], None]
    on_path: Callable[[Sequence[GeoPoint]], None]
    on_connected: Callable[[bool], None]


class TelemetrySource(Protocol):
    """A source variant.

    ``start`` must not block; ``stop`` must leave no timer, task or
    subscription behind, and no sample may reach the sink once ``stop`` has
    been entered.
    """

    mode: SourceMode

    @property
    def connected(self) -> bool:
        ...

    def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...
