"""
Platform position providers.

A provider answers "where is this device right now?" and raises
`LocationUnavailable` when it cannot. Providers never apply timeouts or caching
themselves; `nearneeds.location.acquirer.LocationAcquirer` does that uniformly.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx
from pydantic import ValidationError

from nearneeds.config.settings import Settings
from nearneeds.core.http import get_json
from nearneeds.domain.models import Coordinate

logger = logging.getLogger(__name__)


class LocationUnavailable(Exception):
    """The platform could not produce a position (denied, unsupported, no fix)."""


class LocationProvider(Protocol):
    async def request_current_position(
        self, *, high_accuracy: bool, timeout_seconds: float, max_age_seconds: float
    ) -> Coordinate: ...


class NoLocationProvider:
    """A platform without positioning support."""

    async def request_current_position(
        self, *, high_accuracy: bool, timeout_seconds: float, max_age_seconds: float
    ) -> Coordinate:
        raise LocationUnavailable("positioning is not supported on this platform")


class StaticLocationProvider:
    """Always reports the same configured coordinate."""

    def __init__(self, coordinate: Coordinate):
        self._coordinate = coordinate

    async def request_current_position(
        self, *, high_accuracy: bool, timeout_seconds: float, max_age_seconds: float
    ) -> Coordinate:
        return self._coordinate


class IpLocationProvider:
    """Approximate position from a geo-IP lookup service.

    City-level accuracy at best, so `high_accuracy` cannot be honored. The
    response must carry `latitude`/`longitude` (ipapi.co) or `lat`/`lon` (ip-api.com).
    """

    def __init__(self, url: str, *, client: httpx.AsyncClient | None = None):
        self._url = url
        self._client = client

    async def request_current_position(
        self, *, high_accuracy: bool, timeout_seconds: float, max_age_seconds: float
    ) -> Coordinate:
        try:
            payload = await get_json(self._url, timeout_seconds=timeout_seconds, client=self._client)
        except (httpx.HTTPError, ValueError) as exc:
            raise LocationUnavailable(f"geo-IP lookup failed: {exc}") from exc

        if not isinstance(payload, dict):
            raise LocationUnavailable("geo-IP lookup returned no object")
        lat = payload.get("latitude", payload.get("lat"))
        lng = payload.get("longitude", payload.get("lon"))
        if lat is None or lng is None:
            raise LocationUnavailable("geo-IP lookup returned no coordinates")
        try:
            return Coordinate(lat=lat, lng=lng)
        except ValidationError as exc:
            raise LocationUnavailable("geo-IP lookup returned invalid coordinates") from exc


def build_location_provider(settings: Settings) -> LocationProvider:
    """Return the provider selected by `location.provider`."""
    loc = settings.location
    if loc.provider == "static" and loc.static is not None:
        return StaticLocationProvider(Coordinate(lat=loc.static.lat, lng=loc.static.lng))
    if loc.provider == "ip":
        return IpLocationProvider(loc.ip_lookup_url)
    return NoLocationProvider()
