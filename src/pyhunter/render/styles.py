"""Base map styles and marker icons."""

from __future__ import annotations

from typing import Any

from pyhunter.models.enums import MapStyleKey
from pyhunter.render.surface import IconImage

SATELLITE_ATTRIBUTION = (
    "Tiles &copy; Esri &mdash; Source: Esri, Maxar, Earthstar Geographics, and the GIS User Community"
)

MAP_STYLES: dict[MapStyleKey, str | dict[str, Any]] = {
    MapStyleKey.DARK: "https://basemaps.cartocdn.com/gl/dark-matter-gl-style/style.json",
    MapStyleKey.STREET: "https://basemaps.cartocdn.com/gl/voyager-gl-style/style.json",
    MapStyleKey.SATELLITE: {
        "version": 8,
        "sources": {
            "maxar-imagery": {
                "type": "raster",
                "tiles": [
                    "https://services.arcgisonline.com/arcgis/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}"
                ],
                "tileSize": 256,
                "attribution": SATELLITE_ATTRIBUTION,
                "maxzoom": 19,
            },
        },
        "layers": [{"id": "satellite", "type": "raster", "source": "maxar-imagery"}],
    },
}


def style_descriptor(key: MapStyleKey | str) -> str | dict[str, Any]:
    return MAP_STYLES[MapStyleKey(key)]


START_ICON_ID = "start-icon"
END_ICON_ID = "end-icon"

_START_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="28" height="28" viewBox="0 0 24 24" fill="none" '
    'stroke="white" stroke-width="1.5" stroke-linecap="round" stroke-linejoin="round">'
    '<circle cx="12" cy="12" r="10" fill="#22c55e"></circle>'
    '<polygon points="10,8 16,12 10,16 10,8" fill="white" stroke="none"></polygon></svg>'
)
_END_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="28" height="28" viewBox="0 0 24 24" fill="none" '
    'stroke="white" stroke-width="1.5" stroke-linecap="round" stroke-linejoin="round">'
    '<circle cx="12" cy="12" r="10" fill="#ef4444"></circle>'
    '<path d="m9 12 2 2 4-4" stroke-width="2.5"></path></svg>'
)

ICONS: dict[str, IconImage] = {
    START_ICON_ID: IconImage(svg=_START_SVG, width=28, height=28),
    END_ICON_ID: IconImage(svg=_END_SVG, width=28, height=28),
}
