"""
Location acquisition with timeout and cache-age policies.

Callers get a `LocationResult` back, never an exception: "no position" is a
normal outcome for this app (the feed then shows everything and new posts are
stored without coordinates).
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from nearneeds.config.settings import LocationPolicySettings, Settings
from nearneeds.domain.models import Coordinate
from nearneeds.location.providers import LocationProvider, build_location_provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocationPolicy:
    """How hard to try for a position."""

    high_accuracy: bool
    timeout_seconds: float
    max_age_seconds: float

    @classmethod
    def from_settings(cls, policy: LocationPolicySettings) -> "LocationPolicy":
        return cls(
            high_accuracy=bool(policy.high_accuracy),
            timeout_seconds=float(policy.timeout_seconds),
            max_age_seconds=float(policy.max_age_seconds),
        )


@dataclass(frozen=True)
class LocationResult:
    """Either a coordinate or the reason there is none."""

    coordinate: Coordinate | None
    reason: str | None = None
    cached: bool = False

    @property
    def available(self) -> bool:
        return self.coordinate is not None

    @classmethod
    def unavailable(cls, reason: str) -> "LocationResult":
        return cls(coordinate=None, reason=reason)


class LocationAcquirer:
    """Wraps a platform provider with bounded waits and a last-fix cache."""

    def __init__(self, provider: LocationProvider, *, clock=time.monotonic):
        self._provider = provider
        self._clock = clock
        self._last_fix: Coordinate | None = None
        self._last_fix_at: float | None = None

    def _cached_fix(self, max_age_seconds: float) -> Coordinate | None:
        if max_age_seconds <= 0 or self._last_fix is None or self._last_fix_at is None:
            return None
        if self._clock() - self._last_fix_at > max_age_seconds:
            return None
        return self._last_fix

    async def acquire(self, policy: LocationPolicy) -> LocationResult:
        """Return the current position under `policy`; never raises."""
        cached = self._cached_fix(policy.max_age_seconds)
        if cached is not None:
            return LocationResult(coordinate=cached, cached=True)

        try:
            coordinate = await asyncio.wait_for(
                self._provider.request_current_position(
                    high_accuracy=policy.high_accuracy,
                    timeout_seconds=policy.timeout_seconds,
                    max_age_seconds=policy.max_age_seconds,
                ),
                timeout=policy.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.debug("Location request timed out after %.1fs", policy.timeout_seconds)
            return LocationResult.unavailable("timeout")
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.debug("Location unavailable: %s", str(exc))
            return LocationResult.unavailable(str(exc) or type(exc).__name__)

        self._last_fix = coordinate
        self._last_fix_at = self._clock()
        return LocationResult(coordinate=coordinate)


def build_location_acquirer(settings: Settings) -> LocationAcquirer:
    return LocationAcquirer(build_location_provider(settings))
