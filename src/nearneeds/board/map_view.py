"""Map view model: where to center, how far to zoom, how big the radius circle is."""

from __future__ import annotations

from pydantic import BaseModel

from nearneeds.config.settings import MapSettings
from nearneeds.domain.models import Coordinate


class MapView(BaseModel):
    center: Coordinate
    marker: Coordinate
    radius_m: float
    zoom: int
    tile_url: str
    attribution: str


def zoom_for_radius(radius_km: float, settings: MapSettings) -> int:
    """Pick the zoom of the largest threshold `radius_km` reaches."""
    for level in sorted(settings.zoom_levels, key=lambda lv: lv.min_radius_km, reverse=True):
        if radius_km >= level.min_radius_km:
            return level.zoom
    return settings.default_zoom


def build_map_view(location: Coordinate | None, radius_km: float, settings: MapSettings) -> MapView | None:
    """Return the map for `location`, or None when there is no position to show."""
    if location is None:
        return None
    return MapView(
        center=location,
        marker=location,
        radius_m=float(radius_km) * 1000,
        zoom=zoom_for_radius(radius_km, settings),
        tile_url=settings.tile_url,
        attribution=settings.attribution,
    )
