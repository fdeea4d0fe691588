"""
Map synchronization controller.

`MapSyncController` owns the client's `ViewState` (centre, user location, rendered places,
selection, filters). Every mutation goes through one of its methods; the map widget only
reads the state.

Queries are async and may overlap. Each one takes an increasing sequence number and its
response is applied only if no newer-issued query has already been applied, so a slow
response never overwrites a fresher one. A response is applied as a whole or not at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol, Sequence

from halalmap.core.geo import GeoPoint
from halalmap.domain.models import NearbyResponse, Place, PlacesResponse

logger = logging.getLogger(__name__)


class PlacesSource(Protocol):
    """What the controller needs from the API (see `PlacesApiClient`)."""

    async def nearby(
        self, center: GeoPoint, radius_m: int | None = None, place_type: str | None = None
    ) -> NearbyResponse: ...

    async def list_places(
        self, place_type: str | None = None, verified: bool | None = None, city: str | None = None
    ) -> PlacesResponse: ...


@dataclass(frozen=True)
class Filters:
    place_type: str | None = None
    radius_m: int = 5000


@dataclass
class ViewState:
    center: GeoPoint
    user_location: GeoPoint | None = None
    places: tuple[Place, ...] = ()
    selected: Place | None = None
    filters: Filters = field(default_factory=Filters)


class MapSyncController:
    def __init__(self, source: PlacesSource, *, default_center: GeoPoint, filters: Filters | None = None):
        self._source = source
        self._default_center = default_center
        self._state = ViewState(center=default_center, filters=filters or Filters())
        self._issued = 0
        self._applied = 0

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def query_center(self) -> GeoPoint:
        """User location if known, else the default centre."""
        return self._state.user_location or self._default_center

    def set_result_set(self, places: Sequence[Place]) -> None:
        """Replace the rendered places; drop the selection if its place is gone."""
        self._state.places = tuple(places)
        selected = self._state.selected
        if selected is not None:
            self._state.selected = next((p for p in self._state.places if p.id == selected.id), None)

    def select_place(self, place_id: int) -> bool:
        """Select and recentre on a place from the current result set; ignored if absent."""
        place = next((p for p in self._state.places if p.id == place_id), None)
        if place is None:
            logger.debug("Ignoring selection of place %s outside the current result set", place_id)
            return False
        self._state.selected = place
        self._state.center = place.position
        return True

    def set_center(self, center: GeoPoint) -> None:
        self._state.center = center

    def set_user_location(self, location: GeoPoint) -> None:
        self._state.user_location = location

    async def set_filters(self, place_type: str | None = None, radius_m: int | None = None) -> bool:
        """Store new filters and query again at the current query centre."""
        self._state.filters = Filters(
            place_type=place_type or None,
            radius_m=radius_m if radius_m is not None else self._state.filters.radius_m,
        )
        return await self.refresh(self.query_center)

    async def refresh(self, center: GeoPoint) -> bool:
        """Run a nearby query at `center`; returns whether its result was applied."""
        filters = self._state.filters
        seq = self._next_seq()
        resp = await self._source.nearby(center, filters.radius_m, filters.place_type)
        return self._apply(seq, resp.data)

    async def refresh_listing(self) -> bool:
        """Listing without a centre, filtered by category only."""
        seq = self._next_seq()
        resp = await self._source.list_places(place_type=self._state.filters.place_type)
        return self._apply(seq, resp.data)

    def _next_seq(self) -> int:
        self._issued += 1
        return self._issued

    def _apply(self, seq: int, places: Sequence[Place]) -> bool:
        if seq < self._applied:
            logger.debug("Discarding stale result (query %d, already showing %d)", seq, self._applied)
            return False
        self._applied = seq
        self.set_result_set(places)
        return True
