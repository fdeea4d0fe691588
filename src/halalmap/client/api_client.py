"""
Async client for the public places API.

Used by the map controllers; it returns the same response models the server emits, so the
client and server agree on one contract.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from halalmap.config.settings import Settings
from halalmap.core.errors import HalalMapError, ValidationError
from halalmap.core.geo import GeoPoint
from halalmap.core.http import get_json
from halalmap.domain.models import NearbyResponse, PlacesResponse

logger = logging.getLogger(__name__)


class ApiRequestError(HalalMapError):
    """The API could not be reached or answered with an unexpected payload."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PlacesApiClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None) -> "PlacesApiClient":
        return cls(settings.client.api_url, timeout_seconds=settings.app.http_timeout_seconds, transport=transport)

    async def nearby(self, center: GeoPoint, radius_m: int | None = None, place_type: str | None = None) -> NearbyResponse:
        params: dict[str, Any] = {"lat": center.lat, "lng": center.lon}
        if radius_m is not None:
            params["distance"] = radius_m
        if place_type:
            params["type"] = place_type
        payload = await self._get("/api/places/nearby", params)
        return self._parse(NearbyResponse, payload)

    async def list_places(
        self,
        place_type: str | None = None,
        verified: bool | None = None,
        city: str | None = None,
    ) -> PlacesResponse:
        params: dict[str, Any] = {}
        if place_type:
            params["type"] = place_type
        if verified is not None:
            params["verified"] = "true" if verified else "false"
        if city:
            params["city"] = city
        payload = await self._get("/api/places", params)
        return self._parse(PlacesResponse, payload)

    async def _get(self, path: str, params: dict[str, Any]) -> Any:
        url = f"{self._base_url}{path}"
        try:
            return await get_json(url, params=params, timeout_seconds=self._timeout_seconds, transport=self._transport)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            detail = _error_detail(e.response)
            if status == 400:
                raise ValidationError(detail.get("field") or "request", detail.get("message") or "Invalid request") from e
            logger.warning("API request failed: %s status=%d", url, status)
            raise ApiRequestError(detail.get("message") or f"HTTP {status}", status_code=status) from e
        except httpx.HTTPError as e:
            logger.warning("API request failed: %s (%s)", url, e.__class__.__name__)
            raise ApiRequestError(f"Could not reach API: {e.__class__.__name__}") from e
        except ValueError as e:
            raise ApiRequestError("API returned invalid JSON") from e

    @staticmethod
    def _parse(model, payload: Any):
        try:
            return model.model_validate(payload)
        except PydanticValidationError as e:
            raise ApiRequestError("API returned an unexpected payload") from e


def _error_detail(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    detail = body.get("detail") if isinstance(body, dict) else None
    return detail if isinstance(detail, dict) else {}
