"""Render surface contract.

The map itself is an external 2-D map library (MapLibre GL or similar). The
engine only talks to it through this protocol and through the events it
fires: ``load``, ``styledata``, ``dragstart`` and ``error``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from pyhunter.geo import GeoPoint

EVENT_LOAD = "load"
EVENT_STYLEDATA = "styledata"
EVENT_DRAGSTART = "dragstart"
EVENT_ERROR = "error"

SurfaceEventHandler = Callable[[Any], None]


@dataclass(frozen=True)
class IconImage:
    """Custom marker image registered with the surface."""

    svg: str
    width: int
    height: int


class RenderSurface(Protocol):
    def set_style(self, descriptor: str | dict[str, Any]) -> None:
        ...

    def pan_to(self, point: GeoPoint, *, duration_ms: int) -> None:
        ...

    def add_source(self, source_id: str, source: dict[str, Any]) -> None:
        ...

    def set_source_data(self, source_id: str, data: dict[str, Any]) -> None:
        ...

    def remove_source(self, source_id: str) -> None:
        ...

    def add_layer(self, layer: dict[str, Any], before_id: str | None = None) -> None:
        ...

    def remove_layer(self, layer_id: str) -> None:
        ...

    def add_image(self, image_id: str, image: IconImage) -> None:
        ...

    def has_image(self, image_id: str) -> bool:
        ...

    def get_style(self) -> dict[str, Any]:
        ...

    def is_style_loaded(self) -> bool:
        ...

    def on(self, event: str, handler: SurfaceEventHandler) -> None:
        ...


class SurfaceFactory(Protocol):
    """Builds the map. Raises :class:`RenderSurfaceUnavailableError` when no map can be shown."""

    def __call__(
        self,
        *,
        container: Any,
        initial_style: str | dict[str, Any],
        initial_center: GeoPoint,
        initial_zoom: float,
    ) -> RenderSurface:
        ...
