"""Vehicle status model (``hunter_msgs/HunterStatus``).

Every numeric field is independently nullable. A missing or garbled field
never fails the message and never turns into ``0``.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import Field, field_validator

from pyhunter.ingestion.normalize import sanitize_temperature
from pyhunter.models._base import HunterBaseModel


class ActuatorState(HunterBaseModel):
    """Per-motor driver telemetry."""

    _FLOAT_FIELDS: ClassVar[tuple[str, ...]] = (
        "current",
        "driver_voltage",
        "driver_temperature",
        "motor_temperature",
        "rpm",
    )
    _INT_FIELDS: ClassVar[tuple[str, ...]] = ("motor_id", "pulse_count", "driver_state")

    motor_id: int | None = None
    current: float | None = None
    pulse_count: int | None = None
    rpm: float | None = None
    driver_voltage: float | None = None
    driver_temperature: float | None = None
    motor_temperature: float | None = None
    driver_state: int | None = None

    @property
    def motor_temperature_c(self) -> float | None:
        """Motor temperature with sensor-fault readings filtered out."""
        return sanitize_temperature(self.motor_temperature)

    @property
    def driver_temperature_c(self) -> float | None:
        return sanitize_temperature(self.driver_temperature)


class VehicleStatus(HunterBaseModel):
    """Flat chassis status record.

    Parameters
    ----------
    linear_velocity : float or None
        Forward speed in m/s.
    steering_angle : float or None
        Steering angle in radians.
    battery_voltage : float or None
        Pack voltage in volts.
    control_mode : int or None
        Chassis control mode code (0 = standby, 1 = CAN, 2 = remote).
    vehicle_state : int or None
        Chassis state code.
    error_code : int or None
        Fault bitmask.
    actuator_states : tuple of ActuatorState
        Per-motor records; malformed entries are skipped.
    """

    _FLOAT_FIELDS: ClassVar[tuple[str, ...]] = ("linear_velocity", "steering_angle", "battery_voltage")
    _INT_FIELDS: ClassVar[tuple[str, ...]] = ("control_mode", "vehicle_state", "error_code")

    linear_velocity: float | None = None
    steering_angle: float | None = None
    battery_voltage: float | None = None
    control_mode: int | None = None
    vehicle_state: int | None = None
    error_code: int | None = None
    actuator_states: tuple[ActuatorState, ...] = Field(default_factory=tuple)

    @field_validator("actuator_states", mode="before")
    @classmethod
    def _coerce_actuators(cls, value: Any) -> tuple[ActuatorState, ...]:
        if not isinstance(value, (list, tuple)):
            return ()
        return tuple(
            item if isinstance(item, ActuatorState) else ActuatorState.model_validate(item)
            for item in value
            if isinstance(item, (ActuatorState, dict))
        )

    @property
    def has_fault(self) -> bool:
        return self.error_code is not None and self.error_code != 0
