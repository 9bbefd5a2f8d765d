"""Map render surface integration."""

from pyhunter.render.driver import MapSyncDriver, OverlayPlan, collect_attribution, plan_overlays
from pyhunter.render.styles import MAP_STYLES, style_descriptor
from pyhunter.render.surface import IconImage, RenderSurface, SurfaceFactory

__all__ = [
    "MAP_STYLES",
    "IconImage",
    "MapSyncDriver",
    "OverlayPlan",
    "RenderSurface",
    "SurfaceFactory",
    "collect_attribution",
    "plan_overlays",
    "style_descriptor",
]
