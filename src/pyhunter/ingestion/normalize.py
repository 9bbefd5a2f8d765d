"""Normalization helpers.

Centralizes defensive parsing and placeholder handling. Absent or non-finite
telemetry is always reported as "unknown" (``None`` / :data:`PLACEHOLDER`),
never as ``0``.
"""

from __future__ import annotations

import math
from typing import Any

PLACEHOLDER = "—"

# Temperature readings outside this window are sensor fault signatures.
_TEMP_FAULT_LOW = -20.0
_TEMP_FAULT_HIGH = 150.0


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--":
        return None
    if isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def is_finite_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def sanitize_temperature(value: Any) -> float | None:
    """Return the temperature, or ``None`` when it looks like a sensor fault.

    Rejected: non-finite values, ``<= -20``, exactly ``0`` and ``> 150``.
    """
    if not is_finite_number(value):
        return None
    if value <= _TEMP_FAULT_LOW or value == 0 or value > _TEMP_FAULT_HIGH:
        return None
    return float(value)


def format_hex(value: Any) -> str:
    """Render the unsigned 32-bit interpretation of *value* as ``0xHEX``."""
    if not is_finite_number(value):
        return PLACEHOLDER
    return f"0x{int(value) & 0xFFFFFFFF:X}"


def format_number(value: Any, digits: int = 1) -> str:
    if not is_finite_number(value):
        return PLACEHOLDER
    return f"{float(value):.{digits}f}"


def format_int(value: Any) -> str:
    if not is_finite_number(value):
        return PLACEHOLDER
    # JS Math.round semantics (half up), not banker's rounding.
    return str(math.floor(float(value) + 0.5))


def format_code(value: Any) -> str:
    """Render an integer code as ``"<decimal> (0xHEX)"``."""
    if not is_finite_number(value):
        return PLACEHOLDER
    return f"{int(value)} ({format_hex(value)})"


def format_with_unit(value: Any, unit: str, digits: int = 1) -> str:
    return f"{format_number(value, digits)} {unit}"


def normalize_timestamp_seconds(value: Any) -> float | None:
    """Normalize payload timestamps to epoch seconds.

    - Empty/missing -> None
    - <= 0 -> None
    - Milliseconds (> 1e11) -> seconds
    """

    ts = safe_float(value)
    if ts is None or ts <= 0:
        return None
    if ts > 1e11:
        ts /= 1000.0
    return ts


def ros_stamp_seconds(header: Any) -> float | None:
    """Extract ``header.stamp`` (ROS1 ``secs/nsecs`` or ROS2 ``sec/nanosec``)."""
    if not isinstance(header, dict):
        return None
    stamp = header.get("stamp")
    if not isinstance(stamp, dict):
        return None
    secs = safe_float(stamp.get("secs", stamp.get("sec")))
    if secs is None:
        return None
    nsecs = safe_float(stamp.get("nsecs", stamp.get("nanosec"))) or 0.0
    return normalize_timestamp_seconds(secs + nsecs / 1e9)
