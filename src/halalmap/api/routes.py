"""
Public API routes.

Endpoints:
- GET `/api/places`: listing filtered by type / verified / city substring (no distance).
- GET `/api/places/nearby`: proximity search, nearest first, with distance labels.
- GET `/api/places/cities`: per-city counts.
- GET `/api/places/statistics`: catalog totals.
- GET `/api/places/{place_id}`: one place.
- GET `/api/health`: liveness.

Query values are taken as raw strings and validated by `halalmap.search.validation`, so a bad
`lat` or `distance` comes back as a 400 naming the field.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from halalmap.config.settings import Settings, get_settings
from halalmap.core.errors import NotFoundError, TransientStorageError, ValidationError
from halalmap.domain.models import (
    CitiesResponse,
    NearbyResponse,
    PlaceResponse,
    PlacesResponse,
    StatisticsResponse,
)
from halalmap.search.service import NearbyQueryService
from halalmap.search.validation import parse_place_type, parse_verified
from halalmap.storage.repository import PlaceRepository

from .deps import get_repository, get_search_service

router = APIRouter(prefix="/api")


def validation_http_error(exc: ValidationError) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={"code": "VALIDATION_ERROR", "field": exc.field, "message": exc.message},
    )


def storage_http_error(message: str) -> HTTPException:
    # Internal failure details stay in the logs.
    return HTTPException(status_code=503, detail={"code": "STORAGE_UNAVAILABLE", "message": message})


def not_found_http_error(exc: NotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "NOT_FOUND", "message": str(exc)})


@router.get("/health")
def get_health() -> dict:
    return {"status": "ok"}


@router.get("/places", response_model=PlacesResponse)
def get_places(
    place_type: str | None = Query(default=None, alias="type"),
    verified: str | None = None,
    city: str | None = None,
    settings: Settings = Depends(get_settings),
    repo: PlaceRepository = Depends(get_repository),
) -> PlacesResponse:
    """List places, optionally filtered; ordered by city then name."""
    try:
        places = repo.list_places(
            place_type=parse_place_type(place_type, settings.search),
            verified=parse_verified(verified),
            city=city,
        )
    except ValidationError as e:
        raise validation_http_error(e) from e
    except TransientStorageError as e:
        raise storage_http_error("Failed to fetch places") from e
    return PlacesResponse(count=len(places), data=places)


@router.get("/places/nearby", response_model=NearbyResponse)
def get_nearby_places(
    lat: str | None = None,
    lng: str | None = None,
    distance: str | None = None,
    place_type: str | None = Query(default=None, alias="type"),
    service: NearbyQueryService = Depends(get_search_service),
) -> NearbyResponse:
    """Places within `distance` meters (default 5000) of (`lat`, `lng`), nearest first."""
    try:
        return service.search(lat, lng, distance, place_type)
    except ValidationError as e:
        raise validation_http_error(e) from e
    except TransientStorageError as e:
        raise storage_http_error("Failed to find nearby places") from e


@router.get("/places/cities", response_model=CitiesResponse)
def get_cities(repo: PlaceRepository = Depends(get_repository)) -> CitiesResponse:
    try:
        cities = repo.cities()
    except TransientStorageError as e:
        raise storage_http_error("Failed to fetch cities") from e
    return CitiesResponse(count=len(cities), data=cities)


@router.get("/places/statistics", response_model=StatisticsResponse)
def get_statistics(repo: PlaceRepository = Depends(get_repository)) -> StatisticsResponse:
    try:
        return StatisticsResponse(data=repo.statistics())
    except TransientStorageError as e:
        raise storage_http_error("Failed to fetch statistics") from e


@router.get("/places/{place_id}", response_model=PlaceResponse)
def get_place(place_id: int, repo: PlaceRepository = Depends(get_repository)) -> PlaceResponse:
    try:
        return PlaceResponse(data=repo.get(place_id))
    except NotFoundError as e:
        raise not_found_http_error(e) from e
    except TransientStorageError as e:
        raise storage_http_error("Failed to fetch place") from e
