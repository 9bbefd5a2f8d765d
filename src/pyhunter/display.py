"""Display-ready strings for the status panel.

Widgets receive strings only. Every numeric field goes through the same
rule: absent or non-finite renders as the placeholder, never as ``0``.
"""

from __future__ import annotations

from dataclasses import dataclass

from pyhunter.geo import GeoPoint
from pyhunter.ingestion.normalize import (
    PLACEHOLDER,
    format_code,
    format_hex,
    format_int,
    format_number,
)
from pyhunter.models.status import ActuatorState, VehicleStatus


@dataclass(frozen=True)
class ActuatorPanel:
    label: str
    rpm: str
    motor_temperature: str
    driver_temperature: str
    driver_voltage: str
    current: str
    driver_state: str


@dataclass(frozen=True)
class StatusPanel:
    connected: str
    position: str
    linear_velocity: str
    steering_angle: str
    battery_voltage: str
    control_mode: str
    vehicle_state: str
    error_code: str
    actuators: tuple[ActuatorPanel, ...]


def format_position(point: GeoPoint | None) -> str:
    """``"lat, lng"`` with six decimals."""
    if point is None:
        return f"{PLACEHOLDER}, {PLACEHOLDER}"
    return f"{format_number(point.latitude, 6)}, {format_number(point.longitude, 6)}"


def _code(value: int | None) -> str:
    return PLACEHOLDER if value is None else str(value)


def format_actuator(actuator: ActuatorState) -> ActuatorPanel:
    motor = PLACEHOLDER if actuator.motor_id is None else str(actuator.motor_id)
    return ActuatorPanel(
        label=f"Actuator {motor}",
        rpm=f"{format_int(actuator.rpm)} RPM",
        motor_temperature=f"{format_number(actuator.motor_temperature_c, 1)}°C",
        driver_temperature=f"{format_number(actuator.driver_temperature_c, 1)}°C",
        driver_voltage=f"{format_number(actuator.driver_voltage, 1)}V",
        current=f"{format_number(actuator.current, 2)}A",
        driver_state=f"state {format_hex(actuator.driver_state)}",
    )


def build_status_panel(
    status: VehicleStatus | None,
    *,
    position: GeoPoint | None = None,
    connected: bool = False,
) -> StatusPanel:
    if status is None:
        status = VehicleStatus()
    return StatusPanel(
        connected="Connected" if connected else "Disconnected",
        position=format_position(position),
        linear_velocity=f"{format_number(status.linear_velocity, 1)} m/s",
        steering_angle=f"{format_number(status.steering_angle, 2)} rad",
        battery_voltage=f"{format_number(status.battery_voltage, 1)} V",
        control_mode=_code(status.control_mode),
        vehicle_state=_code(status.vehicle_state),
        error_code=format_code(status.error_code),
        actuators=tuple(format_actuator(a) for a in status.actuator_states),
    )
