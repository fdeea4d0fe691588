"""
Geospatial helpers.

We keep a tiny geometry layer here so the spatial engines can do distance calculations
without pulling in heavier GIS dependencies. Distances are great-circle (haversine) on a
spherical Earth; bounding boxes are exact spherical bounds so a box pre-filter never drops
a point the haversine test would accept.
"""

from __future__ import annotations
from dataclasses import dataclass
from math import asin, cos, degrees, floor, pi, radians, sin, sqrt


EARTH_RADIUS_M = 6_371_000.0

# Edge of a spatial index cell in degrees (~5.5 km of latitude). Persisted keys depend on it.
GRID_CELL_DEG = 0.05

# Slack added to every bounding box edge (~1 cm) to absorb floating point error.
_BOX_PAD_DEG = 1e-7


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """Compute great-circle distance in meters between two points."""
    lat1 = radians(a.lat)
    lon1 = radians(a.lon)
    lat2 = radians(b.lat)
    lon2 = radians(b.lon)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_M * asin(min(1.0, sqrt(h)))


@dataclass(frozen=True)
class BoundingBox:
    """Lat/lon box; longitude may be split in two ranges across the antimeridian."""

    min_lat: float
    max_lat: float
    lon_ranges: tuple[tuple[float, float], ...]

    def contains(self, lat: float, lon: float) -> bool:
        if not self.min_lat <= lat <= self.max_lat:
            return False
        return any(lo <= lon <= hi for lo, hi in self.lon_ranges)


_FULL_LON = ((-180.0, 180.0),)


def bounding_box(center: GeoPoint, radius_m: float) -> BoundingBox:
    """Return a box containing every point within `radius_m` of `center`.

    Uses the exact spherical bounding coordinates: the latitude span is the angular radius,
    the longitude span is `asin(sin(d) / cos(lat))`. Boxes touching a pole cover all longitudes.
    """
    angular = max(0.0, float(radius_m)) / EARTH_RADIUS_M
    if angular >= pi:
        return BoundingBox(-90.0, 90.0, _FULL_LON)

    dlat = degrees(angular) + _BOX_PAD_DEG
    min_lat = center.lat - dlat
    max_lat = center.lat + dlat
    if min_lat <= -90.0 or max_lat >= 90.0:
        return BoundingBox(max(min_lat, -90.0), min(max_lat, 90.0), _FULL_LON)

    ratio = sin(angular) / cos(radians(center.lat))
    if ratio >= 1.0:
        return BoundingBox(min_lat, max_lat, _FULL_LON)

    dlon = degrees(asin(ratio)) + _BOX_PAD_DEG
    lo = center.lon - dlon
    hi = center.lon + dlon
    if lo < -180.0:
        ranges = ((lo + 360.0, 180.0), (-180.0, hi))
    elif hi > 180.0:
        ranges = ((lo, 180.0), (-180.0, hi - 360.0))
    else:
        ranges = ((lo, hi),)
    return BoundingBox(min_lat, max_lat, ranges)


def grid_cell(lat: float, lon: float, cell_deg: float) -> tuple[int, int]:
    """Spatial index key: (row, col) of the fixed-size degree cell holding the point."""
    return int(floor(lat / cell_deg)), int(floor(lon / cell_deg))


def cell_ranges(box: BoundingBox, cell_deg: float) -> tuple[tuple[int, int], list[tuple[int, int]]]:
    """Return the (row span, column spans) of grid cells overlapping `box`."""
    rows = (int(floor(box.min_lat / cell_deg)), int(floor(box.max_lat / cell_deg)))
    cols = [(int(floor(lo / cell_deg)), int(floor(hi / cell_deg))) for lo, hi in box.lon_ranges]
    return rows, cols
