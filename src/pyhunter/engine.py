"""Telemetry-to-map synchronization engine."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable, Sequence
from typing import Any

from pyhunter._transport import TransportFactory
from pyhunter.config import TRANSPORT_OPTIONS, HunterConfig
from pyhunter.display import StatusPanel, build_status_panel
from pyhunter.geo import GeoPoint
from pyhunter.models.enums import MapStyleKey, SourceMode
from pyhunter.models.pose import Pose
from pyhunter.models.status import VehicleStatus
from pyhunter.render.driver import MapSyncDriver
from pyhunter.render.surface import SurfaceFactory
from pyhunter.sources import SourceSink, TelemetrySource, build_source
from pyhunter.state.track import TrackSnapshot, TrackStore
from pyhunter.state.view import ViewController, ViewState

_logger = logging.getLogger(__name__)


class HunterEngine:
    """Read-only vehicle monitoring engine.

    Usage::

        async with HunterEngine(config, surface_factory=make_map) as engine:
            await engine.switch_mode(SourceMode.LIVE)
            ...

    All state changes happen on the event loop, one callback at a time.
    Samples from a source that has been switched away from are dropped.
    """

    def __init__(
        self,
        config: HunterConfig | None = None,
        *,
        mode: SourceMode = SourceMode.SIMULATED,
        surface_factory: SurfaceFactory | None = None,
        container: Any = None,
        transport_factory: TransportFactory | None = None,
        rng: random.Random | None = None,
        on_status: Callable[[VehicleStatus | None], None] | None = None,
        on_connected: Callable[[bool], None] | None = None,
        on_attribution: Callable[[str], None] | None = None,
        on_map_failed: Callable[[], None] | None = None,
    ) -> None:
        self._config = config or HunterConfig()
        # Fixed for the engine lifetime; re-anchoring would shift every projected point.
        self._origin = self._config.origin
        self._mode = SourceMode(mode)
        self._transport_factory = transport_factory
        self._rng = rng
        self._on_status_cb = on_status
        self._on_connected_cb = on_connected
        self._on_attribution_cb = on_attribution
        self._on_map_failed_cb = on_map_failed

        self._track = TrackStore(self._config.trail_max_length)
        self._view = ViewController(
            center=self._origin,
            zoom=self._config.initial_zoom,
            style_key=self._config.map_style,
        )
        self._driver: MapSyncDriver | None = None
        if surface_factory is not None:
            self._driver = MapSyncDriver(
                surface_factory=surface_factory,
                container=container,
                style_key=self._config.map_style,
                initial_center=self._origin,
                initial_zoom=self._config.initial_zoom,
                on_user_drag=self.on_user_drag,
                on_attribution=self._handle_attribution,
                on_map_failed=self._handle_map_failed,
            )

        self._source: TelemetrySource | None = None
        self._generation = 0
        self._status: VehicleStatus | None = None
        self._connected = False
        self._started = False
        self._switch_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> HunterEngine:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        if self._driver is not None:
            self._driver.open()
            self._driver.sync(self._track.snapshot())
        async with self._switch_lock:
            self._activate(self._mode)

    async def stop(self) -> None:
        """Tear down the active source and release the render surface."""
        self._started = False
        async with self._switch_lock:
            await self._retire_source()
        if self._driver is not None:
            self._driver.close()

    # ------------------------------------------------------------------
    # Read-only state for the presentation layer
    # ------------------------------------------------------------------

    @property
    def config(self) -> HunterConfig:
        return self._config

    @property
    def origin(self) -> GeoPoint:
        return self._origin

    @property
    def mode(self) -> SourceMode:
        return self._mode

    @property
    def source(self) -> TelemetrySource | None:
        return self._source

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def status(self) -> VehicleStatus | None:
        return self._status

    @property
    def track(self) -> TrackSnapshot:
        return self._track.snapshot()

    @property
    def view(self) -> ViewState:
        return self._view.snapshot()

    @property
    def map_failed(self) -> bool:
        return self._driver is not None and self._driver.map_failed

    @property
    def attribution(self) -> str:
        return self._driver.attribution if self._driver is not None else ""

    @property
    def camera_urls(self) -> tuple[str, str]:
        """Front and rear stream URLs."""
        return self._config.front_camera_stream, self._config.rear_camera_stream

    def status_panel(self) -> StatusPanel:
        return build_status_panel(
            self._status,
            position=self._track.current_position,
            connected=self._connected,
        )

    # ------------------------------------------------------------------
    # Source management
    # ------------------------------------------------------------------

    def _activate(self, mode: SourceMode) -> None:
        self._generation += 1
        generation = self._generation
        sink = SourceSink(
            on_pose=lambda pose: self._handle_pose(generation, pose),
            on_status=lambda status: self._handle_status(generation, status),
            on_path=lambda points: self._handle_path(generation, points),
            on_connected=lambda connected: self._handle_connected(generation, connected),
        )
        source = build_source(
            mode,
            config=self._config,
            origin=self._origin,
            sink=sink,
            transport_factory=self._transport_factory,
            rng=self._rng,
        )
        self._source = source
        _logger.debug("Activating %s source generation=%d", mode, generation)
        source.start()

    async def _retire_source(self) -> None:
        # Bump first so nothing the old source delivers while stopping is applied.
        self._generation += 1
        source = self._source
        self._source = None
        if source is not None:
            try:
                await source.stop()
            except Exception:
                _logger.warning("Stopping %s source failed", source.mode, exc_info=True)
        self._set_connected(False)

    async def switch_mode(self, mode: SourceMode | str) -> None:
        """Stop the current source completely, clear the track, start *mode*."""
        new_mode = SourceMode(mode)
        async with self._switch_lock:
            if new_mode == self._mode and (self._source is not None or not self._started):
                return
            await self._retire_source()
            self._mode = new_mode
            self._track.on_mode_switch()
            self._set_status(None)
            self._push_track()
            _logger.debug("Switched source mode to %s", new_mode)
            if self._started:
                self._activate(new_mode)

    async def update_config(self, **fields: Any) -> HunterConfig:
        """Apply runtime options. Raises :class:`HunterConfigError` for bad input."""
        new_config = self._config.apply(**fields)
        changed = self._config.changed_fields(new_config)
        self._config = new_config
        if not changed:
            return new_config
        _logger.debug("Applied config changes: %s", sorted(changed))

        if "trail_max_length" in changed:
            self._track.resize(new_config.trail_max_length)
            self._push_track()

        if changed & TRANSPORT_OPTIONS and self._mode == SourceMode.LIVE and self._started:
            async with self._switch_lock:
                await self._retire_source()
                self._activate(SourceMode.LIVE)
        return new_config

    async def reset(self) -> None:
        """Explicit reset: clear trail and path without touching the source."""
        self._track.reset()
        self._push_track()

    # ------------------------------------------------------------------
    # Sample handlers
    # ------------------------------------------------------------------

    def _handle_pose(self, generation: int, pose: Pose) -> None:
        if generation != self._generation:
            return
        try:
            self._track.on_pose(pose)
            self._push_track()
            if self._view.should_pan_on_position():
                self._pan(pose.position)
        except Exception:
            _logger.warning("Pose update failed", exc_info=True)

    def _handle_path(self, generation: int, points: Sequence[GeoPoint]) -> None:
        if generation != self._generation:
            return
        try:
            self._track.on_path(points)
            self._push_track()
        except Exception:
            _logger.warning("Path update failed", exc_info=True)

    def _handle_status(self, generation: int, status: VehicleStatus) -> None:
        if generation != self._generation:
            return
        self._set_status(status)

    def _handle_connected(self, generation: int, connected: bool) -> None:
        if generation != self._generation:
            return
        self._set_connected(connected)

    def _set_status(self, status: VehicleStatus | None) -> None:
        self._status = status
        self._notify(self._on_status_cb, status)

    def _set_connected(self, connected: bool) -> None:
        if connected == self._connected:
            return
        self._connected = connected
        self._notify(self._on_connected_cb, connected)

    def _handle_attribution(self, text: str) -> None:
        self._notify(self._on_attribution_cb, text)

    def _handle_map_failed(self) -> None:
        _logger.warning("Map render surface unavailable; presentation should show a placeholder")
        self._notify(self._on_map_failed_cb)

    @staticmethod
    def _notify(callback: Callable[..., None] | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            _logger.warning("Engine listener failed", exc_info=True)

    # ------------------------------------------------------------------
    # Map
    # ------------------------------------------------------------------

    def _push_track(self) -> None:
        if self._driver is not None:
            self._driver.sync(self._track.snapshot())

    def _pan(self, point: GeoPoint) -> None:
        if self._driver is None:
            return
        if self._driver.pan_to(point):
            self._view.mirror_camera(point)

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def on_user_drag(self) -> None:
        """User started dragging the map: follow mode disengages."""
        self._view.on_user_drag()

    def on_camera_moved(self, center: GeoPoint, zoom: float | None = None) -> None:
        """Mirror a camera change reported by the surface."""
        self._view.mirror_camera(center, zoom)

    def toggle_follow(self) -> bool:
        following = self._view.toggle_follow()
        position = self._track.current_position
        if following and position is not None:
            self._pan(position)
        return following

    def recenter(self) -> None:
        """Pan to the vehicle now and re-engage follow mode."""
        self._view.recenter()
        position = self._track.current_position
        if position is not None:
            self._pan(position)

    def set_style(self, key: MapStyleKey | str) -> None:
        if self._view.set_style(key) and self._driver is not None:
            self._driver.set_style(self._view.style_key)
