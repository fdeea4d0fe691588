"""
Spatial engine contract.

Any backing store that can answer "which places lie within D meters of P" implements
`SpatialEngine`. Implementations may pre-filter with a bounding box or grid, but the
returned distance and the radius test always come from `haversine_m` on the stored
position. Results are unordered; ranking belongs to the search service.

- `PlaceRepository` (`halalmap.storage.repository`): SQL store with a persisted grid key.
- `InMemorySpatialEngine`: grid index over a loaded catalog.
"""

from __future__ import annotations

import logging
import threading
from typing import NamedTuple, Protocol

from halalmap.core.geo import GRID_CELL_DEG, GeoPoint
from halalmap.core.spatial_index import SpatialGridIndex
from halalmap.domain.models import Place

logger = logging.getLogger(__name__)


class Match(NamedTuple):
    place: Place
    distance_m: float


class SpatialEngine(Protocol):
    def find_within_radius(
        self, center: GeoPoint, radius_m: float, place_type: str | None = None
    ) -> list[Match]: ...


class InMemorySpatialEngine:
    """Grid-indexed places held in memory; writes update the index synchronously.

    Admin writes arrive on request worker threads, so index access is serialized.
    """

    def __init__(self, places: list[Place] | None = None, *, cell_deg: float = GRID_CELL_DEG):
        self._index: SpatialGridIndex[Place] = SpatialGridIndex(
            list(places or []),
            get_key=lambda p: p.id,
            get_latlon=lambda p: (p.latitude, p.longitude),
            cell_deg=cell_deg,
        )
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._index)

    def get(self, place_id: int) -> Place | None:
        return self._index.get(place_id)

    def upsert(self, place: Place) -> None:
        with self._lock:
            self._index.upsert(place)

    def remove(self, place_id: int) -> bool:
        with self._lock:
            return self._index.remove(place_id)

    def find_within_radius(
        self, center: GeoPoint, radius_m: float, place_type: str | None = None
    ) -> list[Match]:
        with self._lock:
            hits = self._index.query_within(lat=center.lat, lon=center.lon, radius_m=radius_m)
        matches = [Match(place, d) for place, d in hits if place_type is None or place.type == place_type]
        logger.debug(
            "In-memory radius query lat=%.6f lon=%.6f radius=%s type=%s -> %d",
            center.lat,
            center.lon,
            radius_m,
            place_type,
            len(matches),
        )
        return matches
