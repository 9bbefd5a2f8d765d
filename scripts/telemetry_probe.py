#!/usr/bin/env python3
"""Run the engine against a logging render surface.

Useful to check a robot's feed without a browser:
1) connect to the configured transport (or run the simulator),
2) print the status panel every few seconds,
3) log every overlay command the map would receive.

Configuration comes from ``HUNTER_*`` environment variables; command line
options override them.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyhunter import GeoPoint, HunterConfig, HunterEngine, HunterError, SourceMode  # noqa: E402
from pyhunter._redact import redact_url  # noqa: E402
from pyhunter.display import StatusPanel  # noqa: E402
from pyhunter.render.surface import IconImage, SurfaceEventHandler  # noqa: E402

_LOG = logging.getLogger("telemetry_probe")


class LoggingSurface:
    """Render surface that only logs what it is asked to draw."""

    def __init__(
        self,
        *,
        container: Any,
        initial_style: str | dict[str, Any],
        initial_center: GeoPoint,
        initial_zoom: float,
    ) -> None:
        self._style = initial_style
        self._handlers: dict[str, list[SurfaceEventHandler]] = {}
        self._images: set[str] = set()
        self._sources: dict[str, dict[str, Any]] = {}
        self.pan_count = 0
        _LOG.debug("surface created center=%s zoom=%s", initial_center, initial_zoom)

    def fire(self, event: str) -> None:
        for handler in list(self._handlers.get(event, [])):
            handler(None)

    def on(self, event: str, handler: SurfaceEventHandler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def set_style(self, descriptor: str | dict[str, Any]) -> None:
        self._style = descriptor
        self._images.clear()
        self._sources.clear()
        self.fire("styledata")

    def pan_to(self, point: GeoPoint, *, duration_ms: int) -> None:
        self.pan_count += 1
        _LOG.debug("pan_to %.6f, %.6f (%d ms)", point.latitude, point.longitude, duration_ms)

    def add_source(self, source_id: str, source: dict[str, Any]) -> None:
        self._sources[source_id] = source
        _LOG.debug("add_source %s", source_id)

    def set_source_data(self, source_id: str, data: dict[str, Any]) -> None:
        _LOG.debug("set_source_data %s", source_id)

    def remove_source(self, source_id: str) -> None:
        self._sources.pop(source_id, None)
        _LOG.debug("remove_source %s", source_id)

    def add_layer(self, layer: dict[str, Any], before_id: str | None = None) -> None:
        _LOG.debug("add_layer %s before=%s", layer["id"], before_id)

    def remove_layer(self, layer_id: str) -> None:
        _LOG.debug("remove_layer %s", layer_id)

    def add_image(self, image_id: str, image: IconImage) -> None:
        self._images.add(image_id)

    def has_image(self, image_id: str) -> bool:
        return image_id in self._images

    def get_style(self) -> dict[str, Any]:
        if isinstance(self._style, dict):
            return {"sources": {**self._style.get("sources", {}), **self._sources}}
        return {"sources": dict(self._sources)}

    def is_style_loaded(self) -> bool:
        return True


@dataclass
class ProbeStats:
    started_at: float
    status_updates: int = 0
    connection_changes: int = 0


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Headless probe for the Hunter telemetry feed.",
    )
    parser.add_argument(
        "--mode",
        choices=[m.value for m in SourceMode],
        default=SourceMode.LIVE.value,
        help="Telemetry source to run.",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Transport URL (overrides HUNTER_TRANSPORT_URL).",
    )
    parser.add_argument(
        "--position-source",
        choices=["odometry", "gps"],
        default=None,
        help="Position message type (overrides HUNTER_POSITION_SOURCE).",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--report-seconds",
        type=float,
        default=5.0,
        help="Print the status panel every N seconds.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs (including every map command).",
    )
    return parser.parse_args()


def _print_panel(panel: StatusPanel, *, trail: int, path: int) -> None:
    print(f"[probe] {panel.connected}  position={panel.position}  trail={trail}  path={path}")
    print(
        f"[probe]   speed={panel.linear_velocity}  steering={panel.steering_angle}  "
        f"battery={panel.battery_voltage}"
    )
    print(f"[probe]   control={panel.control_mode}  state={panel.vehicle_state}  error={panel.error_code}")
    for actuator in panel.actuators:
        print(
            f"[probe]   {actuator.label}: {actuator.rpm}  motor={actuator.motor_temperature}  "
            f"driver={actuator.driver_temperature}  {actuator.driver_voltage}  {actuator.current}  "
            f"{actuator.driver_state}"
        )


def _print_summary(stats: ProbeStats, surface: LoggingSurface | None) -> None:
    runtime = time.time() - stats.started_at
    print("[probe] Summary")
    print(f"[probe]   runtime_s          : {runtime:.1f}")
    print(f"[probe]   status_updates     : {stats.status_updates}")
    print(f"[probe]   connection_changes : {stats.connection_changes}")
    if surface is not None:
        print(f"[probe]   pans               : {surface.pan_count}")


async def _run(args: argparse.Namespace, config: HunterConfig) -> None:
    stats = ProbeStats(started_at=time.time())
    surfaces: list[LoggingSurface] = []

    def make_surface(**kwargs: Any) -> LoggingSurface:
        surface = LoggingSurface(**kwargs)
        surfaces.append(surface)
        return surface

    def on_status(_status: Any) -> None:
        stats.status_updates += 1

    def on_connected(connected: bool) -> None:
        stats.connection_changes += 1
        print(f"[probe] {'Connected' if connected else 'Disconnected'}")

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    engine = HunterEngine(
        config,
        mode=SourceMode(args.mode),
        surface_factory=make_surface,
        on_status=on_status,
        on_connected=on_connected,
        on_attribution=lambda text: print(f"[probe] Map attribution: {text}"),
    )
    deadline = time.monotonic() + args.duration if args.duration > 0 else None
    async with engine:
        if surfaces:
            surfaces[0].fire("load")
        while not stop.is_set():
            timeout = args.report_seconds
            if deadline is not None:
                timeout = min(timeout, max(0.0, deadline - time.monotonic()))
            try:
                await asyncio.wait_for(stop.wait(), timeout=timeout)
            except TimeoutError:
                pass
            track = engine.track
            _print_panel(engine.status_panel(), trail=len(track.trail), path=len(track.path))
            if deadline is not None and time.monotonic() >= deadline:
                break

    _print_summary(stats, surfaces[0] if surfaces else None)


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides: dict[str, Any] = {}
    if args.url:
        overrides["transport_url"] = args.url
    if args.position_source:
        overrides["position_source"] = args.position_source
    try:
        config = HunterConfig.from_env(**overrides)
    except HunterError as exc:
        print(f"[probe] Invalid configuration: {exc}", file=sys.stderr)
        return 2

    front, rear = config.front_camera_stream, config.rear_camera_stream
    print(f"[probe] transport : {redact_url(config.transport_url)}")
    print(f"[probe] cameras   : {front} | {rear}")

    asyncio.run(_run(args, config))
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
