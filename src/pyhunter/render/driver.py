"""Map sync driver.

Sole owner of the render surface. Every push is a reconcile step: the
desired overlay set is computed from the current track snapshot and only the
difference against what the driver believes is on the surface is issued.
A style switch wipes custom images, sources and layers on the surface side,
so the driver forgets its bookkeeping and redraws once the new style loads.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from pyhunter._constants import PAN_DURATION_MS
from pyhunter.exceptions import RenderSurfaceUnavailableError
from pyhunter.geo import GeoPoint
from pyhunter.models.enums import MapStyleKey
from pyhunter.render.styles import END_ICON_ID, ICONS, START_ICON_ID, style_descriptor
from pyhunter.render.surface import (
    EVENT_DRAGSTART,
    EVENT_ERROR,
    EVENT_LOAD,
    EVENT_STYLEDATA,
    RenderSurface,
    SurfaceFactory,
)
from pyhunter.state.track import TrackSnapshot

_logger = logging.getLogger(__name__)

T = TypeVar("T")

VEHICLE_SOURCE = "vehicle-source"
TRAIL_SOURCE = "trail-source"
PATH_SOURCE = "path-source"
PATH_START_SOURCE = "start-point-source"
PATH_END_SOURCE = "end-point-source"

TRAIL_LAYER = "trail-line"
PATH_CASING_LAYER = "path-casing"
PATH_LINE_LAYER = "path-line"
PATH_START_LAYER = "start-point"
PATH_END_LAYER = "end-point"
VEHICLE_LAYER = "vehicle-point"

# Sources whose line layers use line-progress based gradients.
_LINE_METRIC_SOURCES = frozenset({TRAIL_SOURCE})


def _point_feature(point: GeoPoint, **properties: Any) -> dict[str, Any]:
    return {
        "type": "Feature",
        "properties": properties,
        "geometry": {"type": "Point", "coordinates": point.as_lng_lat()},
    }


def _line_feature(points: tuple[GeoPoint, ...]) -> dict[str, Any]:
    return {
        "type": "Feature",
        "properties": {},
        "geometry": {"type": "LineString", "coordinates": [p.as_lng_lat() for p in points]},
    }


def _trail_layer() -> dict[str, Any]:
    return {
        "id": TRAIL_LAYER,
        "type": "line",
        "source": TRAIL_SOURCE,
        "layout": {"line-join": "round", "line-cap": "round"},
        "paint": {
            "line-width": 3,
            # Oldest end transparent, newest end solid.
            "line-gradient": [
                "interpolate",
                ["linear"],
                ["line-progress"],
                0,
                "rgba(96, 165, 250, 0)",
                1,
                "rgba(96, 165, 250, 0.9)",
            ],
        },
    }


def _path_layers(length: int) -> list[dict[str, Any]]:
    layers: list[dict[str, Any]] = []
    if length > 1:
        layers.append(
            {
                "id": PATH_CASING_LAYER,
                "type": "line",
                "source": PATH_SOURCE,
                "layout": {"line-join": "round", "line-cap": "round"},
                "paint": {"line-color": "#a13c00", "line-width": 8, "line-opacity": 0.4},
            }
        )
        layers.append(
            {
                "id": PATH_LINE_LAYER,
                "type": "line",
                "source": PATH_SOURCE,
                "layout": {"line-join": "round", "line-cap": "round"},
                "paint": {"line-color": "#ff7c05", "line-width": 4},
            }
        )
    layers.append(
        {
            "id": PATH_START_LAYER,
            "type": "symbol",
            "source": PATH_START_SOURCE,
            "layout": {"icon-image": START_ICON_ID, "icon-size": 1, "icon-allow-overlap": True},
        }
    )
    if length > 1:
        layers.append(
            {
                "id": PATH_END_LAYER,
                "type": "symbol",
                "source": PATH_END_SOURCE,
                "layout": {"icon-image": END_ICON_ID, "icon-size": 1, "icon-allow-overlap": True},
            }
        )
    return layers


def _vehicle_layer() -> dict[str, Any]:
    return {
        "id": VEHICLE_LAYER,
        "type": "circle",
        "source": VEHICLE_SOURCE,
        "paint": {
            "circle-radius": 6,
            "circle-color": "#60a5fa",
            "circle-stroke-width": 2,
            "circle-stroke-color": "#ffffff",
        },
    }


@dataclass(frozen=True)
class OverlayPlan:
    """Desired overlay state: GeoJSON data per source, layers in draw order."""

    sources: dict[str, dict[str, Any]] = field(default_factory=dict)
    layers: tuple[dict[str, Any], ...] = ()

    @property
    def layer_ids(self) -> tuple[str, ...]:
        return tuple(layer["id"] for layer in self.layers)


def plan_overlays(track: TrackSnapshot) -> OverlayPlan:
    """Compute the overlay set for *track*.

    - trail line once the trail has two points
    - path line and end marker once the path has two points, start marker
      from one point, nothing for an empty path
    - vehicle marker on top whenever a current position exists
    """
    sources: dict[str, dict[str, Any]] = {}
    layers: list[dict[str, Any]] = []

    if len(track.trail) >= 2:
        sources[TRAIL_SOURCE] = _line_feature(track.trail)
        layers.append(_trail_layer())

    path = track.path
    if path:
        sources[PATH_START_SOURCE] = _point_feature(path[0])
        if len(path) >= 2:
            sources[PATH_SOURCE] = _line_feature(path)
            sources[PATH_END_SOURCE] = _point_feature(path[-1])
        layers.extend(_path_layers(len(path)))

    current = track.current
    if current is not None:
        properties: dict[str, Any] = {}
        if current.heading is not None:
            properties["heading"] = current.heading
        sources[VEHICLE_SOURCE] = _point_feature(current.position, **properties)
        layers.append(_vehicle_layer())

    return OverlayPlan(sources=sources, layers=tuple(layers))


def collect_attribution(style: Any) -> str:
    """Join the distinct ``attribution`` strings of the style's sources."""
    if not isinstance(style, dict):
        return ""
    sources = style.get("sources")
    if not isinstance(sources, dict):
        return ""
    seen: list[str] = []
    for source in sources.values():
        if not isinstance(source, dict):
            continue
        text = source.get("attribution")
        if isinstance(text, str) and text and text not in seen:
            seen.append(text)
    return " | ".join(seen)


class MapSyncDriver:
    """Pushes track/view state to a render surface it exclusively owns."""

    def __init__(
        self,
        *,
        surface_factory: SurfaceFactory,
        container: Any = None,
        style_key: MapStyleKey = MapStyleKey.DARK,
        initial_center: GeoPoint,
        initial_zoom: float,
        on_user_drag: Callable[[], None] | None = None,
        on_attribution: Callable[[str], None] | None = None,
        on_map_failed: Callable[[], None] | None = None,
    ) -> None:
        self._surface_factory = surface_factory
        self._container = container
        self._style_key = MapStyleKey(style_key)
        self._initial_center = initial_center
        self._initial_zoom = initial_zoom
        self._on_user_drag = on_user_drag
        self._on_attribution = on_attribution
        self._on_map_failed = on_map_failed

        self._surface: RenderSurface | None = None
        self._failed = False
        self._style_ready = False
        self._attribution = ""
        self._track: TrackSnapshot | None = None
        # What we believe is on the surface right now.
        self._sources: dict[str, dict[str, Any]] = {}
        self._layers: list[str] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def map_failed(self) -> bool:
        return self._failed

    @property
    def attribution(self) -> str:
        return self._attribution

    @property
    def style_key(self) -> MapStyleKey:
        return self._style_key

    @property
    def style_ready(self) -> bool:
        return self._style_ready

    def open(self) -> bool:
        """Create the surface and wire its events. Returns ``False`` on failure."""
        if self._surface is not None or self._failed:
            return not self._failed
        try:
            surface = self._surface_factory(
                container=self._container,
                initial_style=style_descriptor(self._style_key),
                initial_center=self._initial_center,
                initial_zoom=self._initial_zoom,
            )
            surface.on(EVENT_DRAGSTART, self._handle_dragstart)
            surface.on(EVENT_LOAD, self._handle_style_event)
            surface.on(EVENT_STYLEDATA, self._handle_style_event)
            surface.on(EVENT_ERROR, self._handle_error)
        except RenderSurfaceUnavailableError as exc:
            _logger.warning("Render surface unavailable: %s", exc)
            self._fail()
            return False
        except Exception:
            _logger.warning("Render surface failed to initialize", exc_info=True)
            self._fail()
            return False
        self._surface = surface
        return True

    def close(self) -> None:
        self._surface = None
        self._sources.clear()
        self._layers.clear()
        self._style_ready = False
        self._attribution = ""

    def _fail(self) -> None:
        if self._failed:
            return
        self._failed = True
        self._style_ready = False
        if self._on_map_failed is not None:
            self._on_map_failed()

    def _invoke(self, operation: str, call: Callable[[RenderSurface], T]) -> T | None:
        surface = self._surface
        if surface is None or self._failed:
            return None
        try:
            return call(surface)
        except Exception:
            _logger.warning("Render surface %s failed", operation, exc_info=True)
            self._fail()
            return None

    # ------------------------------------------------------------------
    # Surface events
    # ------------------------------------------------------------------

    def _handle_dragstart(self, _event: Any = None) -> None:
        if self._on_user_drag is not None:
            self._on_user_drag()

    def _handle_error(self, event: Any = None) -> None:
        _logger.warning("Render surface reported error: %r", event)
        self._fail()

    def _handle_style_event(self, _event: Any = None) -> None:
        loaded = self._invoke("is_style_loaded", lambda s: s.is_style_loaded())
        if not loaded:
            return
        self._style_ready = True
        self._ensure_images()
        self._update_attribution()
        if self._track is not None:
            self._reconcile(plan_overlays(self._track))

    def _ensure_images(self) -> None:
        for image_id, image in ICONS.items():
            present = self._invoke("has_image", lambda s, i=image_id: s.has_image(i))
            if present or self._failed:
                continue
            self._invoke("add_image", lambda s, i=image_id, img=image: s.add_image(i, img))

    def _update_attribution(self) -> None:
        style = self._invoke("get_style", lambda s: s.get_style())
        text = collect_attribution(style)
        if text == self._attribution:
            return
        self._attribution = text
        if self._on_attribution is not None:
            self._on_attribution(text)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def sync(self, track: TrackSnapshot) -> None:
        """Record *track* and push it if the style is ready."""
        self._track = track
        if self._style_ready and not self._failed:
            self._reconcile(plan_overlays(track))

    def set_style(self, key: MapStyleKey | str) -> None:
        """Swap the base style; overlays are redrawn after it loads."""
        self._style_key = MapStyleKey(key)
        if self._surface is None or self._failed:
            return
        self._style_ready = False
        self._sources.clear()
        self._layers.clear()
        _logger.debug("Switching map style to %s", self._style_key)
        self._invoke("set_style", lambda s: s.set_style(style_descriptor(self._style_key)))

    def pan_to(self, point: GeoPoint) -> bool:
        """Issue a pan command. Returns ``True`` if it reached the surface."""
        if self._surface is None or self._failed:
            return False
        self._invoke("pan_to", lambda s: s.pan_to(point, duration_ms=PAN_DURATION_MS))
        return not self._failed

    def _reconcile(self, plan: OverlayPlan) -> None:
        wanted_layers = plan.layer_ids

        # Layers first: a source cannot be removed while a layer uses it.
        for layer_id in [lid for lid in self._layers if lid not in wanted_layers]:
            self._invoke("remove_layer", lambda s, lid=layer_id: s.remove_layer(lid))
            self._layers.remove(layer_id)

        for source_id in [sid for sid in self._sources if sid not in plan.sources]:
            self._invoke("remove_source", lambda s, sid=source_id: s.remove_source(sid))
            del self._sources[source_id]

        for source_id, data in plan.sources.items():
            current = self._sources.get(source_id)
            if current is None:
                descriptor: dict[str, Any] = {"type": "geojson", "data": data}
                if source_id in _LINE_METRIC_SOURCES:
                    descriptor["lineMetrics"] = True
                self._invoke("add_source", lambda s, sid=source_id, d=descriptor: s.add_source(sid, d))
            elif current != data:
                self._invoke("set_source_data", lambda s, sid=source_id, d=data: s.set_source_data(sid, d))
            else:
                continue
            self._sources[source_id] = data

        for index, layer in enumerate(plan.layers):
            if layer["id"] in self._layers:
                continue
            before_id = next((lid for lid in wanted_layers[index + 1 :] if lid in self._layers), None)
            self._invoke("add_layer", lambda s, lyr=layer, b=before_id: s.add_layer(lyr, b))
            self._layers.append(layer["id"])
