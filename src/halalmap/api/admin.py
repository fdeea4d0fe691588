"""
Admin routes (bearer-token protected).

Endpoints:
- POST   `/api/admin/places`: create a place.
- PUT    `/api/admin/places/{place_id}`: partial update.
- PATCH  `/api/admin/places/{place_id}/verify`: toggle the verified flag.
- DELETE `/api/admin/places/{place_id}`: delete a place.

Every write recomputes the spatial index key in the same transaction, so a search issued
after the response already sees the new position. With the memory backend the committed
place is also pushed into the in-process search index before the response is sent.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from halalmap.core.errors import NotFoundError, TransientStorageError, ValidationError
from halalmap.domain.models import PlaceCreate, PlaceResponse, PlaceUpdate
from halalmap.storage.repository import PlaceRepository

from .auth import require_admin
from .deps import get_repository, sync_search_index
from .routes import not_found_http_error, storage_http_error, validation_http_error

router = APIRouter(prefix="/api/admin", dependencies=[Depends(require_admin)])


@router.post("/places", response_model=PlaceResponse, status_code=201)
def create_place(payload: PlaceCreate, repo: PlaceRepository = Depends(get_repository)) -> PlaceResponse:
    try:
        place = repo.create(payload)
    except TransientStorageError as e:
        raise storage_http_error("Failed to create place") from e
    sync_search_index(place)
    return PlaceResponse(data=place, message="Place created successfully")


@router.put("/places/{place_id}", response_model=PlaceResponse)
def update_place(
    place_id: int, payload: PlaceUpdate, repo: PlaceRepository = Depends(get_repository)
) -> PlaceResponse:
    try:
        place = repo.update(place_id, payload)
    except ValidationError as e:
        raise validation_http_error(e) from e
    except NotFoundError as e:
        raise not_found_http_error(e) from e
    except TransientStorageError as e:
        raise storage_http_error("Failed to update place") from e
    sync_search_index(place)
    return PlaceResponse(data=place, message="Place updated successfully")


@router.patch("/places/{place_id}/verify", response_model=PlaceResponse)
def toggle_place_verified(place_id: int, repo: PlaceRepository = Depends(get_repository)) -> PlaceResponse:
    try:
        place = repo.toggle_verified(place_id)
    except NotFoundError as e:
        raise not_found_http_error(e) from e
    except TransientStorageError as e:
        raise storage_http_error("Failed to update place") from e
    sync_search_index(place)
    state = "verified" if place.verified else "unverified"
    return PlaceResponse(data=place, message=f"Place marked as {state}")


@router.delete("/places/{place_id}", response_model=PlaceResponse)
def delete_place(place_id: int, repo: PlaceRepository = Depends(get_repository)) -> PlaceResponse:
    try:
        place = repo.delete(place_id)
    except NotFoundError as e:
        raise not_found_http_error(e) from e
    except TransientStorageError as e:
        raise storage_http_error("Failed to delete place") from e
    sync_search_index(removed_id=place_id)
    return PlaceResponse(data=place, message="Place deleted successfully")
