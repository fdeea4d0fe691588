from __future__ import annotations

import asyncio

from halalmap.client.location import LocationAcquisitionController, LocationState, build_map_session
from halalmap.client.map_sync import MapSyncController
from halalmap.config.settings import Settings
from halalmap.core.errors import LocationDenied, LocationUnavailable
from halalmap.core.geo import GeoPoint
from halalmap.domain.models import NearbyResponse, Place, PlacesResponse, SearchEcho

DEFAULT_CENTER = GeoPoint(lat=41.7151, lon=44.8271)
LISTED = Place(id=1, name="Tbilisi Central Mosque", type="mosque", latitude=41.6894, longitude=44.8089)


class _Source:
    def __init__(self):
        self.calls = []

    async def nearby(self, center, radius_m=None, place_type=None):
        self.calls.append(("nearby", center))
        echo = SearchEcho(latitude=center.lat, longitude=center.lon, radius_meters=radius_m or 5000)
        return NearbyResponse(count=0, search=echo, data=[])

    async def list_places(self, place_type=None, verified=None, city=None):
        self.calls.append(("list", place_type))
        return PlacesResponse(count=1, data=[LISTED])


class _Provider:
    """Replays scripted results; an `asyncio.Event` result blocks until set, then yields the next item."""

    def __init__(self, *results):
        self._results = list(results)
        self.requests = []

    async def current_position(self, *, high_accuracy, max_age_seconds):
        self.requests.append((high_accuracy, max_age_seconds))
        result = self._results.pop(0)
        if isinstance(result, tuple):
            gate, result = result
            await gate.wait()
        if result == "hang":
            await asyncio.sleep(60)
        if isinstance(result, Exception):
            raise result
        return result


def _controllers(provider, timeout_seconds=1.0):
    source = _Source()
    map_sync = MapSyncController(source, default_center=DEFAULT_CENTER)
    return source, map_sync, LocationAcquisitionController(provider, map_sync, timeout_seconds=timeout_seconds)


def test_located_recentres_and_searches_with_a_fresh_fix():
    here = GeoPoint(lat=41.6417, lon=41.6333)
    provider = _Provider(here)
    source, map_sync, ctl = _controllers(provider)

    outcome = asyncio.run(ctl.request_location())

    assert outcome.state is LocationState.LOCATED
    assert ctl.state is LocationState.LOCATED
    assert provider.requests == [(True, 0)]
    assert map_sync.state.user_location == here
    assert map_sync.state.center == here
    assert source.calls == [("nearby", here)]


def test_denied_falls_back_to_listing():
    source, map_sync, ctl = _controllers(_Provider(LocationDenied()))

    outcome = asyncio.run(ctl.request_location())

    assert outcome.state is LocationState.DENIED
    assert outcome.message == "Location permission denied"
    assert isinstance(outcome.error, LocationDenied)
    assert source.calls == [("list", None)]
    assert [p.id for p in map_sync.state.places] == [1]


def test_timeout_is_reported_and_falls_back():
    source, map_sync, ctl = _controllers(_Provider("hang"), timeout_seconds=0.01)

    outcome = asyncio.run(ctl.request_location())

    assert outcome.state is LocationState.TIMED_OUT
    assert outcome.message == "Location request timed out"
    assert source.calls == [("list", None)]


def test_failure_with_known_location_searches_there():
    last_known = GeoPoint(lat=41.55, lon=45.0)
    source, map_sync, ctl = _controllers(_Provider(LocationUnavailable()))
    map_sync.set_user_location(last_known)

    outcome = asyncio.run(ctl.request_location())

    assert outcome.state is LocationState.UNAVAILABLE
    assert outcome.message == "Location information unavailable"
    assert source.calls == [("nearby", last_known)]


def test_unexpected_provider_error_is_reported_as_unavailable():
    source, map_sync, ctl = _controllers(_Provider(RuntimeError("sensor driver crashed")))

    outcome = asyncio.run(ctl.request_location())

    assert outcome.state is LocationState.UNAVAILABLE
    assert ctl.state is LocationState.UNAVAILABLE
    assert outcome.message == "Location information unavailable"
    assert isinstance(outcome.error, LocationUnavailable)
    assert isinstance(outcome.error.__cause__, RuntimeError)
    assert source.calls == [("list", None)]
    assert [p.id for p in map_sync.state.places] == [1]


def test_outcome_resolving_after_a_newer_one_is_discarded():
    older = GeoPoint(lat=41.0, lon=44.0)
    newer = GeoPoint(lat=42.0, lon=43.0)

    async def scenario():
        gate = asyncio.Event()
        provider = _Provider((gate, older), newer)
        source, map_sync, ctl = _controllers(provider)

        first = asyncio.create_task(ctl.request_location())
        await asyncio.sleep(0)
        second = await ctl.request_location()
        gate.set()
        return source, map_sync, ctl, await first, second

    source, map_sync, ctl, first, second = asyncio.run(scenario())
    assert second.discarded is False
    assert first.discarded is True
    assert ctl.state is LocationState.LOCATED
    assert map_sync.state.user_location == newer
    assert source.calls == [("nearby", newer)]


def test_reset_returns_to_idle():
    _, _, ctl = _controllers(_Provider(LocationDenied()))
    asyncio.run(ctl.request_location())
    ctl.reset()
    assert ctl.state is LocationState.IDLE


def test_build_map_session_uses_configured_defaults():
    settings = Settings.model_validate({"map": {"location_timeout_seconds": 3}, "search": {"default_radius_m": 2000}})
    map_sync, locator = build_map_session(_Provider(), _Source(), settings)

    assert map_sync.state.center == GeoPoint(lat=41.7151, lon=44.8271)
    assert map_sync.state.filters.radius_m == 2000
    assert locator.state is LocationState.IDLE
