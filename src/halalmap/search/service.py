"""
Nearby query service.

Pipeline for one proximity search:
1. validate raw inputs (`halalmap.search.validation`), errors propagate unchanged
2. ask the spatial engine for every place within the radius
3. rank nearest-first, ties by place id
4. attach the distance label
5. echo the parameters actually used (including a defaulted radius)

The service keeps no state between calls and never retries a failed lookup.
"""

from __future__ import annotations

import logging
from typing import Any

from halalmap.config.settings import SearchSettings
from halalmap.core.errors import TransientStorageError
from halalmap.domain.models import NearbyPlace, NearbyResponse, ProximityQuery, SearchEcho
from halalmap.search.formatting import format_distance
from halalmap.search.validation import build_proximity_query
from halalmap.spatial.engine import Match, SpatialEngine

logger = logging.getLogger(__name__)


def rank_matches(matches: list[Match]) -> list[Match]:
    """Order matches ascending by distance, then by place id."""
    return sorted(matches, key=lambda m: (m.distance_m, m.place.id))


def annotate(match: Match) -> NearbyPlace:
    return NearbyPlace(
        **match.place.model_dump(),
        distance_meters=match.distance_m,
        distance_text=format_distance(match.distance_m),
    )


class NearbyQueryService:
    def __init__(self, engine: SpatialEngine, settings: SearchSettings):
        self._engine = engine
        self._settings = settings

    def search(
        self,
        raw_lat: Any,
        raw_lng: Any,
        raw_radius: Any = None,
        raw_type: Any = None,
    ) -> NearbyResponse:
        """Validate, look up, rank and annotate; see module docstring."""
        query = build_proximity_query(raw_lat, raw_lng, raw_radius, raw_type, settings=self._settings)
        return self.run(query)

    def run(self, query: ProximityQuery) -> NearbyResponse:
        """Execute an already-validated query."""
        center = query.center
        logger.info(
            "Searching for places near (%.6f, %.6f) within %dm type=%s",
            center.lat,
            center.lon,
            query.radius_m,
            query.place_type or "all",
        )
        try:
            matches = self._engine.find_within_radius(center, query.radius_m, query.place_type)
        except TransientStorageError:
            logger.error(
                "Nearby lookup failed lat=%.6f lon=%.6f radius_m=%d type=%s",
                center.lat,
                center.lon,
                query.radius_m,
                query.place_type or "all",
                exc_info=True,
            )
            raise

        data = [annotate(m) for m in rank_matches(matches)]
        logger.info("Found %d places", len(data))
        return NearbyResponse(
            count=len(data),
            search=SearchEcho(
                latitude=center.lat,
                longitude=center.lon,
                radius_meters=query.radius_m,
                type=query.place_type or "all",
                radius_defaulted=query.radius_defaulted,
            ),
            data=data,
        )
