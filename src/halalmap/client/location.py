"""
Location acquisition controller.

States: IDLE -> LOCATING -> {LOCATED, DENIED, UNAVAILABLE, TIMED_OUT}.

Every `request_location()` asks the provider for a fresh high-accuracy fix (no cached
position) under its own timeout. On success the map recentres on the user and runs a nearby
query with the current filters; on failure the caller gets a user-facing message and the map
falls back to a listing so it is never left empty.

Requests may overlap and nothing is cancelled. An outcome that resolves after a newer request
has already resolved is discarded without touching the view state.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Protocol

from halalmap.config.settings import Settings, get_settings
from halalmap.core.errors import LocationError, LocationTimedOut, LocationUnavailable
from halalmap.core.geo import GeoPoint

from .map_sync import Filters, MapSyncController, PlacesSource

logger = logging.getLogger(__name__)


class LocationState(str, enum.Enum):
    IDLE = "idle"
    LOCATING = "locating"
    LOCATED = "located"
    DENIED = "denied"
    UNAVAILABLE = "unavailable"
    TIMED_OUT = "timed_out"


_FAILURE_STATES = {
    "denied": LocationState.DENIED,
    "unavailable": LocationState.UNAVAILABLE,
    "timed_out": LocationState.TIMED_OUT,
}


class LocationProvider(Protocol):
    async def current_position(self, *, high_accuracy: bool, max_age_seconds: float) -> GeoPoint:
        """Return the device position or raise a `LocationError` subclass."""
        ...


@dataclass(frozen=True)
class LocationOutcome:
    state: LocationState
    location: GeoPoint | None = None
    error: LocationError | None = None
    message: str | None = None
    discarded: bool = False


class LocationAcquisitionController:
    def __init__(self, provider: LocationProvider, map_sync: MapSyncController, *, timeout_seconds: float = 10):
        self._provider = provider
        self._map_sync = map_sync
        self._timeout_seconds = timeout_seconds
        self._state = LocationState.IDLE
        self._issued = 0
        self._resolved = 0

    @property
    def state(self) -> LocationState:
        return self._state

    def reset(self) -> None:
        self._state = LocationState.IDLE

    async def request_location(self) -> LocationOutcome:
        self._issued += 1
        seq = self._issued
        self._state = LocationState.LOCATING

        try:
            location = await asyncio.wait_for(
                self._provider.current_position(high_accuracy=True, max_age_seconds=0),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError:
            error: LocationError = LocationTimedOut()
        except LocationError as e:
            error = e
        except Exception as e:
            logger.warning("Location provider failed unexpectedly", exc_info=True)
            error = LocationUnavailable()
            error.__cause__ = e
        else:
            if self._is_stale(seq):
                return LocationOutcome(state=LocationState.LOCATED, location=location, discarded=True)
            self._state = LocationState.LOCATED
            self._map_sync.set_user_location(location)
            self._map_sync.set_center(location)
            await self._map_sync.refresh(location)
            return LocationOutcome(state=LocationState.LOCATED, location=location)

        failed = _FAILURE_STATES.get(error.kind, LocationState.UNAVAILABLE)
        if self._is_stale(seq):
            return LocationOutcome(state=failed, error=error, message=error.user_message, discarded=True)
        self._state = failed
        logger.info("Location request failed (%s); falling back to listing", error.kind)
        await self._fallback()
        return LocationOutcome(state=failed, error=error, message=error.user_message)

    def _is_stale(self, seq: int) -> bool:
        if seq < self._resolved:
            logger.debug("Discarding location outcome %d (already resolved %d)", seq, self._resolved)
            return True
        self._resolved = seq
        return False

    async def _fallback(self) -> None:
        last_known = self._map_sync.state.user_location
        if last_known is not None:
            await self._map_sync.refresh(last_known)
        else:
            await self._map_sync.refresh_listing()


def build_map_session(
    provider: LocationProvider,
    source: PlacesSource,
    settings: Settings | None = None,
) -> tuple[MapSyncController, LocationAcquisitionController]:
    """Wire both controllers from settings (default centre, default radius, location timeout)."""
    settings = settings or get_settings()
    center = settings.map.default_center
    map_sync = MapSyncController(
        source,
        default_center=GeoPoint(lat=center.lat, lon=center.lon),
        filters=Filters(radius_m=settings.search.default_radius_m),
    )
    locator = LocationAcquisitionController(
        provider, map_sync, timeout_seconds=settings.map.location_timeout_seconds
    )
    return map_sync, locator
