"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- catalog entities (`Place`) and proximity results (`NearbyPlace`)
- the validated search input (`ProximityQuery`)
- admin write payloads (`PlaceCreate`, `PlaceUpdate`)
- API response envelopes shared by the server and the async client

Keeping these models in one place keeps the JSON output consistent across CLI/API/client.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from halalmap.core.geo import GeoPoint

PlaceType = Literal["restaurant", "mosque"]

_PHONE_RE = re.compile(r"^[\d\s+\-()]+$")
_URL_RE = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)


class Place(BaseModel):
    """A catalogued restaurant or mosque."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str = Field(..., min_length=1)
    type: PlaceType
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    city: str | None = None
    address: str | None = None
    description: str | None = None
    phone: str | None = None
    website: str | None = None
    verified: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def position(self) -> GeoPoint:
        return GeoPoint(lat=self.latitude, lon=self.longitude)


class NearbyPlace(Place):
    """A place annotated by a proximity query (derived fields are never persisted)."""

    distance_meters: float
    distance_text: str

    @computed_field  # type: ignore[prop-decorator]
    @property
    def distance(self) -> float:
        """Same value as `distance_meters`; older clients read this key."""
        return self.distance_meters


class ProximityQuery(BaseModel):
    """Validated proximity search input."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    center: GeoPoint
    radius_m: int
    place_type: str | None = None
    radius_defaulted: bool = False


def _strip(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class _PlaceFields(BaseModel):
    @field_validator("name", "city", "address", "description", "phone", "website", mode="before", check_fields=False)
    @classmethod
    def _strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("phone", check_fields=False)
    @classmethod
    def _validate_phone(cls, value: str | None) -> str | None:
        value = _strip(value)
        if value is not None and not _PHONE_RE.match(value):
            raise ValueError("Phone number contains invalid characters")
        return value

    @field_validator("website", check_fields=False)
    @classmethod
    def _validate_website(cls, value: str | None) -> str | None:
        value = _strip(value)
        if value is not None and not _URL_RE.match(value):
            raise ValueError("Website must be a valid URL")
        return value


class PlaceCreate(_PlaceFields):
    """Admin payload for a new place."""

    name: str = Field(..., min_length=3, max_length=255)
    type: PlaceType
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    city: str | None = Field(default=None, min_length=2, max_length=100)
    address: str | None = Field(default=None, max_length=500)
    description: str | None = Field(default=None, max_length=1000)
    phone: str | None = None
    website: str | None = None
    verified: bool = False


class PlaceUpdate(_PlaceFields):
    """Admin partial update; only fields that are set are written."""

    name: str | None = Field(default=None, min_length=3, max_length=255)
    type: PlaceType | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    city: str | None = Field(default=None, min_length=2, max_length=100)
    address: str | None = Field(default=None, max_length=500)
    description: str | None = Field(default=None, max_length=1000)
    phone: str | None = None
    website: str | None = None
    verified: bool | None = None


class SearchEcho(BaseModel):
    """Search parameters actually used, echoed back with the results."""

    latitude: float
    longitude: float
    radius_meters: int
    type: str = "all"
    radius_defaulted: bool = False


class NearbyResponse(BaseModel):
    success: bool = True
    count: int
    search: SearchEcho
    data: list[NearbyPlace]


class PlacesResponse(BaseModel):
    success: bool = True
    count: int
    data: list[Place]


class PlaceResponse(BaseModel):
    success: bool = True
    data: Place
    message: str | None = None


class CityStats(BaseModel):
    city: str
    count: int
    restaurants: int
    mosques: int


class CitiesResponse(BaseModel):
    success: bool = True
    count: int
    data: list[CityStats]


class Statistics(BaseModel):
    total_places: int
    total_restaurants: int
    total_mosques: int
    verified_places: int
    unverified_places: int
    total_cities: int
    recent_additions: int


class StatisticsResponse(BaseModel):
    success: bool = True
    data: Statistics
