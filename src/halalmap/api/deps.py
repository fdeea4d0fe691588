"""
Dependency wiring: process-wide singletons built lazily from settings.

Routes receive these through `Depends(...)`; tests swap them with
`app.dependency_overrides` or by clearing the caches after changing env vars.
"""

from __future__ import annotations

from functools import lru_cache

from halalmap.config.settings import get_settings
from halalmap.domain.models import Place
from halalmap.search.service import NearbyQueryService
from halalmap.spatial.engine import InMemorySpatialEngine, SpatialEngine
from halalmap.storage.db import Database
from halalmap.storage.repository import PlaceRepository


@lru_cache
def get_database() -> Database:
    return Database(get_settings().database)


@lru_cache
def get_repository() -> PlaceRepository:
    return PlaceRepository(get_database())


@lru_cache
def get_spatial_engine() -> SpatialEngine:
    """SQL repository by default.

    With `storage.backend: memory` searches run against a grid index loaded once from the
    database; admin routes push each committed write into it (see `sync_search_index`).
    """
    settings = get_settings()
    if settings.storage.backend == "memory":
        return InMemorySpatialEngine(get_repository().list_places())
    return get_repository()


def sync_search_index(place: Place | None = None, *, removed_id: int | None = None) -> None:
    """Mirror a committed SQL write into the memory index; no-op for the SQL backend."""
    if get_settings().storage.backend != "memory":
        return
    engine = get_spatial_engine()
    if not isinstance(engine, InMemorySpatialEngine):
        return
    if place is not None:
        engine.upsert(place)
    if removed_id is not None:
        engine.remove(removed_id)


def get_search_service() -> NearbyQueryService:
    return NearbyQueryService(get_spatial_engine(), get_settings().search)


def reset_caches() -> None:
    """Drop cached singletons (used after settings change)."""
    if get_database.cache_info().currsize:
        get_database().dispose()
    for fn in (get_spatial_engine, get_repository, get_database):
        fn.cache_clear()
