"""
Geospatial helpers.

We keep a tiny geometry layer here so the feed filter and the map view can do
distance calculations without pulling in heavier GIS dependencies.
"""

from __future__ import annotations

from math import asin, cos, radians, sin, sqrt
from typing import Protocol

EARTH_RADIUS_KM = 6371.0


class LatLng(Protocol):
    """Anything exposing `lat`/`lng` in decimal degrees."""

    @property
    def lat(self) -> float: ...

    @property
    def lng(self) -> float: ...


def haversine_km(a: LatLng, b: LatLng) -> float:
    """Compute great-circle distance in kilometers between two points."""
    lat1 = radians(a.lat)
    lng1 = radians(a.lng)
    lat2 = radians(b.lat)
    lng2 = radians(b.lng)

    dlat = lat2 - lat1
    dlng = lng2 - lng1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlng / 2) ** 2
    # Rounding can push h slightly outside [0, 1] near antipodal points.
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * asin(sqrt(h))
