"""
Coordinate & radius validation.

Raw query values (strings from the query string, or numbers from JSON / the CLI) are turned
into a `ProximityQuery` here, before any spatial lookup runs. Every rejection names the
offending field so the API can return a field-level message.
"""

from __future__ import annotations

import math
import re
from typing import Any

from halalmap.config.settings import SearchSettings
from halalmap.core.errors import InvalidCategory, InvalidCoordinate, InvalidRadius, ValidationError
from halalmap.core.geo import GeoPoint
from halalmap.domain.models import ProximityQuery

_INT_RE = re.compile(r"^[+-]?\d+$")

# Values meaning "no category filter".
_ALL_TYPES = {"", "all"}


def _is_missing(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


def _parse_float(raw: Any, *, field: str, label: str) -> float:
    if _is_missing(raw):
        raise InvalidCoordinate(field, f"{label} ({field}) is required", raw)
    if isinstance(raw, bool):
        raise InvalidCoordinate(field, f"{label} must be a number", raw)
    try:
        value = float(raw.strip() if isinstance(raw, str) else raw)
    except (TypeError, ValueError):
        raise InvalidCoordinate(field, f"{label} must be a number", raw) from None
    if not math.isfinite(value):
        raise InvalidCoordinate(field, f"{label} must be a finite number", raw)
    return value


def parse_latitude(raw: Any, *, field: str = "lat") -> float:
    value = _parse_float(raw, field=field, label="Latitude")
    if not -90.0 <= value <= 90.0:
        raise InvalidCoordinate(field, "Latitude must be between -90 and 90", raw)
    return value


def parse_longitude(raw: Any, *, field: str = "lng") -> float:
    value = _parse_float(raw, field=field, label="Longitude")
    if not -180.0 <= value <= 180.0:
        raise InvalidCoordinate(field, "Longitude must be between -180 and 180", raw)
    return value


def parse_radius(raw: Any, settings: SearchSettings, *, field: str = "distance") -> tuple[int, bool]:
    """Return `(radius_m, defaulted)`; out-of-range values are rejected, never clamped."""
    if _is_missing(raw):
        return settings.default_radius_m, True

    message = f"Distance must be between {settings.min_radius_m} and {settings.max_radius_m} meters"
    if isinstance(raw, bool):
        raise InvalidRadius(field, message, raw)
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, float):
        if not raw.is_integer():
            raise InvalidRadius(field, message, raw)
        value = int(raw)
    elif isinstance(raw, str) and _INT_RE.match(raw.strip()):
        value = int(raw.strip())
    else:
        raise InvalidRadius(field, message, raw)

    if not settings.min_radius_m <= value <= settings.max_radius_m:
        raise InvalidRadius(field, message, raw)
    return value, False


def parse_place_type(raw: Any, settings: SearchSettings, *, field: str = "type") -> str | None:
    """Return the category filter, or None for "all"."""
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise InvalidCategory(field, _category_message(settings), raw)
    value = raw.strip().lower()
    if value in _ALL_TYPES:
        return None
    if value not in settings.place_types:
        raise InvalidCategory(field, _category_message(settings), raw)
    return value


def _category_message(settings: SearchSettings) -> str:
    choices = " or ".join(f'"{t}"' for t in settings.place_types)
    return f"Type must be either {choices}"


def parse_verified(raw: Any, *, field: str = "verified") -> bool | None:
    if _is_missing(raw):
        return None
    if isinstance(raw, bool):
        return raw
    value = str(raw).strip().lower()
    if value in {"true", "1"}:
        return True
    if value in {"false", "0"}:
        return False
    raise ValidationError(field, "Verified must be a boolean", raw)


def build_proximity_query(
    raw_lat: Any,
    raw_lng: Any,
    raw_radius: Any = None,
    raw_type: Any = None,
    *,
    settings: SearchSettings,
) -> ProximityQuery:
    """Validate raw inputs into a `ProximityQuery` (raises a `ValidationError` subclass)."""
    lat = parse_latitude(raw_lat)
    lon = parse_longitude(raw_lng)
    radius_m, defaulted = parse_radius(raw_radius, settings)
    place_type = parse_place_type(raw_type, settings)
    return ProximityQuery(
        center=GeoPoint(lat=lat, lon=lon),
        radius_m=radius_m,
        place_type=place_type,
        radius_defaulted=defaulted,
    )
