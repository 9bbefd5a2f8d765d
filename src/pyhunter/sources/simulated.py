"""Simulated telemetry: a vehicle driving circles around the origin.

Status values vary smoothly and occasionally carry a non-default control
mode or an error code so that fault displays get exercised.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import random
from dataclasses import dataclass

from pyhunter._constants import DEFAULT_SIM_TICK_INTERVAL
from pyhunter.exceptions import ProjectionOutOfRangeError
from pyhunter.geo import GeoPoint, LocalOffset, heading_from_enu_yaw, project
from pyhunter.models.enums import SourceMode
from pyhunter.models.pose import Pose
from pyhunter.models.status import ActuatorState, VehicleStatus
from pyhunter.sources.base import SourceSink

_logger = logging.getLogger(__name__)

CIRCLE_RADIUS_M = 140.0
TIME_STEP = 0.04
ACTUATOR_COUNT = 3
_DRIVER_STATES = (192, 64, 128)


@dataclass(frozen=True)
class SimulatedSample:
    pose: Pose | None
    status: VehicleStatus


def simulate_pose(t: float, origin: GeoPoint) -> Pose:
    x = math.cos(t) * CIRCLE_RADIUS_M
    y = math.sin(t) * CIRCLE_RADIUS_M
    # Counter-clockwise travel: velocity direction is t + 90°.
    heading = heading_from_enu_yaw(t + math.pi / 2)
    return Pose(position=project(LocalOffset(x=x, y=y), origin), heading=heading)


def simulate_status(t: float, rng: random.Random) -> VehicleStatus:
    actuators = tuple(
        ActuatorState(
            motor_id=i,
            current=0.5 + math.sin(t * 0.4 + i) * 0.4,
            pulse_count=rng.randrange(16_777_215),
            rpm=math.floor(1200 + math.sin(t * 0.3 + i) * 200),
            driver_voltage=26.4 + math.sin(t * 0.2 + i) * 0.8,
            driver_temperature=39 + math.sin(t * 0.15 + i) * 6,
            motor_temperature=-27 + math.sin(t * 0.1 + i) * 13,
            driver_state=_DRIVER_STATES[i % len(_DRIVER_STATES)],
        )
        for i in range(ACTUATOR_COUNT)
    )
    return VehicleStatus(
        linear_velocity=abs(math.sin(t * 0.5)) * 1.6,
        steering_angle=math.cos(t * 0.6) * 0.3,
        battery_voltage=25.7 + math.sin(t * 0.1) * 0.5,
        control_mode=2 if rng.random() > 0.9 else 0,
        vehicle_state=3 if rng.random() > 0.8 else 2,
        error_code=4096 if rng.random() > 0.95 else 0,
        actuator_states=actuators,
    )


def simulate_tick(t: float, origin: GeoPoint, rng: random.Random) -> SimulatedSample:
    """Produce the sample for simulated time *t*.

    The pose is ``None`` if the circle cannot be projected around *origin*.
    """
    pose: Pose | None
    try:
        pose = simulate_pose(t, origin)
    except ProjectionOutOfRangeError:
        _logger.warning("Simulated position out of range t=%.2f origin=%s", t, origin)
        pose = None
    return SimulatedSample(pose=pose, status=simulate_status(t, rng))


class SimulatedSource:
    """Clock-driven generator delivering a sample every ``tick_interval`` seconds."""

    mode = SourceMode.SIMULATED

    def __init__(
        self,
        *,
        origin: GeoPoint,
        sink: SourceSink,
        tick_interval: float = DEFAULT_SIM_TICK_INTERVAL,
        rng: random.Random | None = None,
    ) -> None:
        self._origin = origin
        self._sink = sink
        self._tick_interval = tick_interval
        self._rng = rng or random.Random()
        self._t = 0.0
        self._task: asyncio.Task[None] | None = None
        self._stopped = True

    @property
    def connected(self) -> bool:
        return not self._stopped

    @property
    def elapsed(self) -> float:
        return self._t

    def start(self) -> None:
        if self._task is not None:
            return
        self._stopped = False
        self._sink.on_connected(True)
        self._task = asyncio.get_running_loop().create_task(self._run())
        _logger.debug("Simulated source started interval=%.3fs", self._tick_interval)

    async def _run(self) -> None:
        while not self._stopped:
            await asyncio.sleep(self._tick_interval)
            self.tick()

    def tick(self) -> None:
        """Advance simulated time by one step and deliver the sample."""
        if self._stopped:
            return
        self._t += TIME_STEP
        sample = simulate_tick(self._t, self._origin, self._rng)
        if sample.pose is not None:
            self._sink.on_pose(sample.pose)
        self._sink.on_status(sample.status)

    async def stop(self) -> None:
        self._stopped = True
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        _logger.debug("Simulated source stopped t=%.2f", self._t)
