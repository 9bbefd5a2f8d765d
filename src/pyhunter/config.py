"""Engine configuration for pyhunter."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyhunter._constants import (
    DEFAULT_ORIGIN_LATITUDE,
    DEFAULT_ORIGIN_LONGITUDE,
    DEFAULT_PATH_TOPIC,
    DEFAULT_POSE_TOPIC,
    DEFAULT_SIM_TICK_INTERVAL,
    DEFAULT_STATUS_TOPIC,
    DEFAULT_TRAIL_MAX_LENGTH,
    DEFAULT_TRANSPORT_URL,
    DEFAULT_ZOOM,
    FRONT_CAMERA_TOPIC,
    REAR_CAMERA_TOPIC,
    camera_stream_url,
)
from pyhunter.exceptions import HunterConfigError
from pyhunter.geo import GeoPoint
from pyhunter.models.enums import MapStyleKey, PositionSource

# Options a user may change at runtime through ``HunterEngine.update_config``.
RUNTIME_OPTIONS: frozenset[str] = frozenset(
    {
        "transport_url",
        "status_topic",
        "pose_topic",
        "path_topic",
        "position_source",
        "trail_max_length",
        "front_camera_url",
        "rear_camera_url",
    }
)

# Options that require the live source to be rebuilt when changed.
TRANSPORT_OPTIONS: frozenset[str] = frozenset(
    {"transport_url", "status_topic", "pose_topic", "path_topic", "position_source"}
)


@dataclasses.dataclass(frozen=True)
class HunterConfig:
    """Engine configuration.

    Loaded once when the engine is constructed. Runtime changes go through
    :meth:`apply`, which returns a new validated instance; nothing mutates
    a config in place.

    Parameters
    ----------
    transport_url : str
        Pub/sub endpoint. ``ws://``/``wss://`` selects rosbridge,
        ``mqtt://``/``mqtts://`` selects MQTT.
    status_topic : str
        Vehicle status topic (``hunter_msgs/HunterStatus``).
    pose_topic : str
        Position topic. Odometry or NavSatFix depending on
        ``position_source``.
    path_topic : str
        Planned path topic (list of NavSatFix).
    position_source : PositionSource
        ``odometry`` (local frame, projected) or ``gps`` (geographic fix).
    trail_max_length : int
        Maximum number of trail points kept.
    origin_longitude, origin_latitude : float
        Anchor of the local tangent plane. Fixed for the engine lifetime.
    initial_zoom : float
        Zoom level the map is created with.
    map_style : MapStyleKey
        Initial base map style.
    sim_tick_interval : float
        Seconds between simulated samples.
    front_camera_url, rear_camera_url : str or None
        MJPEG stream URLs. ``None`` derives them from ``transport_url``.
    """

    transport_url: str = DEFAULT_TRANSPORT_URL
    status_topic: str = DEFAULT_STATUS_TOPIC
    pose_topic: str = DEFAULT_POSE_TOPIC
    path_topic: str = DEFAULT_PATH_TOPIC
    position_source: PositionSource = PositionSource.GPS
    trail_max_length: int = DEFAULT_TRAIL_MAX_LENGTH
    origin_longitude: float = DEFAULT_ORIGIN_LONGITUDE
    origin_latitude: float = DEFAULT_ORIGIN_LATITUDE
    initial_zoom: float = DEFAULT_ZOOM
    map_style: MapStyleKey = MapStyleKey.DARK
    sim_tick_interval: float = DEFAULT_SIM_TICK_INTERVAL
    front_camera_url: str | None = None
    rear_camera_url: str | None = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "position_source", PositionSource(self.position_source))
        except ValueError as exc:
            raise HunterConfigError(f"Unknown position_source: {self.position_source!r}") from exc
        try:
            object.__setattr__(self, "map_style", MapStyleKey(self.map_style))
        except ValueError as exc:
            raise HunterConfigError(f"Unknown map_style: {self.map_style!r}") from exc

        if not isinstance(self.trail_max_length, int) or isinstance(self.trail_max_length, bool):
            raise HunterConfigError("trail_max_length must be an integer")
        if self.trail_max_length < 1:
            raise HunterConfigError("trail_max_length must be at least 1")
        if self.sim_tick_interval <= 0:
            raise HunterConfigError("sim_tick_interval must be positive")
        if not self.transport_url.strip():
            raise HunterConfigError("transport_url must be non-empty")
        for name in ("status_topic", "pose_topic", "path_topic"):
            if not getattr(self, name).strip():
                raise HunterConfigError(f"{name} must be non-empty")
        # Validates bounds; raises for out-of-range origins.
        self.origin  # noqa: B018

    @property
    def origin(self) -> GeoPoint:
        try:
            return GeoPoint(longitude=self.origin_longitude, latitude=self.origin_latitude)
        except ValueError as exc:
            raise HunterConfigError(
                f"Invalid origin ({self.origin_longitude}, {self.origin_latitude})"
            ) from exc

    @property
    def front_camera_stream(self) -> str:
        return self.front_camera_url or camera_stream_url(self.transport_url, FRONT_CAMERA_TOPIC)

    @property
    def rear_camera_stream(self) -> str:
        return self.rear_camera_url or camera_stream_url(self.transport_url, REAR_CAMERA_TOPIC)

    def apply(self, **fields: Any) -> HunterConfig:
        """Return a copy with runtime *fields* applied.

        Only :data:`RUNTIME_OPTIONS` are accepted; the origin and other
        construction-time settings cannot change on a running engine.
        """
        unknown = set(fields) - RUNTIME_OPTIONS
        if unknown:
            raise HunterConfigError(f"Unrecognized or non-runtime options: {', '.join(sorted(unknown))}")
        return dataclasses.replace(self, **fields)

    def changed_fields(self, other: HunterConfig) -> set[str]:
        """Names of fields whose values differ between *self* and *other*."""
        return {
            f.name for f in dataclasses.fields(self) if getattr(self, f.name) != getattr(other, f.name)
        }

    @classmethod
    def from_env(cls, **overrides: Any) -> HunterConfig:
        """Create configuration from ``HUNTER_*`` environment variables.

        Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        HunterConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "HUNTER_TRANSPORT_URL": "transport_url",
            "HUNTER_STATUS_TOPIC": "status_topic",
            "HUNTER_POSE_TOPIC": "pose_topic",
            "HUNTER_PATH_TOPIC": "path_topic",
            "HUNTER_POSITION_SOURCE": "position_source",
            "HUNTER_MAP_STYLE": "map_style",
            "HUNTER_FRONT_CAMERA_URL": "front_camera_url",
            "HUNTER_REAR_CAMERA_URL": "rear_camera_url",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val.strip()

        # Numeric options, handle separately
        _ENV_NUMERIC_MAP = {
            "HUNTER_TRAIL_MAX_LENGTH": ("trail_max_length", int),
            "HUNTER_ORIGIN_LONGITUDE": ("origin_longitude", float),
            "HUNTER_ORIGIN_LATITUDE": ("origin_latitude", float),
            "HUNTER_INITIAL_ZOOM": ("initial_zoom", float),
            "HUNTER_SIM_TICK_INTERVAL": ("sim_tick_interval", float),
        }
        for env_key, (field_name, parse) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = parse(val)
            except ValueError as exc:
                raise HunterConfigError(f"{env_key} is not a valid number: {val!r}") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
