"""
Lightweight spatial indexing (grid bucket) for lat/lon points.

Used to avoid O(N) scans when the catalog is served from memory. Cells are fixed-size
degree buckets (the same key the SQL store persists), and the candidate cells come from an
exact spherical bounding box, so the pre-filter never drops a point within the radius.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Hashable, TypeVar

from halalmap.core.geo import GRID_CELL_DEG, GeoPoint, bounding_box, cell_ranges, grid_cell, haversine_m

T = TypeVar("T")


@dataclass(frozen=True)
class _Entry(Generic[T]):
    item: T
    lat: float
    lon: float
    cell: tuple[int, int]


class SpatialGridIndex(Generic[T]):
    def __init__(
        self,
        items: list[T],
        *,
        get_key: Callable[[T], Hashable],
        get_latlon: Callable[[T], tuple[float, float]],
        cell_deg: float = GRID_CELL_DEG,
    ):
        if float(cell_deg) <= 0:
            raise ValueError("cell_deg must be > 0")
        self._cell_deg = float(cell_deg)
        self._get_key = get_key
        self._get_latlon = get_latlon
        self._cells: dict[tuple[int, int], dict[Hashable, _Entry[T]]] = {}
        self._entries: dict[Hashable, _Entry[T]] = {}

        for it in items:
            self.upsert(it)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def items(self) -> list[T]:
        return [e.item for e in self._entries.values()]

    def get(self, key: Hashable) -> T | None:
        entry = self._entries.get(key)
        return entry.item if entry else None

    def upsert(self, item: T) -> None:
        """Insert or replace `item`, recomputing its cell from the current position."""
        key = self._get_key(item)
        lat, lon = self._get_latlon(item)
        lat_f = float(lat)
        lon_f = float(lon)
        self.remove(key)
        entry = _Entry(item=item, lat=lat_f, lon=lon_f, cell=grid_cell(lat_f, lon_f, self._cell_deg))
        self._entries[key] = entry
        self._cells.setdefault(entry.cell, {})[key] = entry

    def remove(self, key: Hashable) -> bool:
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        bucket = self._cells.get(entry.cell)
        if bucket is not None:
            bucket.pop(key, None)
            if not bucket:
                del self._cells[entry.cell]
        return True

    def _candidate_cells(self, center: GeoPoint, radius_m: float) -> list[dict[Hashable, _Entry[T]]]:
        box = bounding_box(center, radius_m)
        (row_lo, row_hi), col_spans = cell_ranges(box, self._cell_deg)
        wanted = (row_hi - row_lo + 1) * sum(hi - lo + 1 for lo, hi in col_spans)

        # Wide boxes: walking the populated cells is cheaper than enumerating empty ones.
        if wanted > len(self._cells):
            return [
                bucket
                for (row, col), bucket in self._cells.items()
                if row_lo <= row <= row_hi and any(lo <= col <= hi for lo, hi in col_spans)
            ]

        out = []
        for row in range(row_lo, row_hi + 1):
            for lo, hi in col_spans:
                for col in range(lo, hi + 1):
                    bucket = self._cells.get((row, col))
                    if bucket:
                        out.append(bucket)
        return out

    def query_within(self, *, lat: float, lon: float, radius_m: float) -> list[tuple[T, float]]:
        """Return `(item, distance_m)` for every item with haversine distance <= `radius_m`."""
        r = float(radius_m)
        if r < 0:
            return []
        origin = GeoPoint(lat=float(lat), lon=float(lon))
        box = bounding_box(origin, r)

        out: list[tuple[T, float]] = []
        for bucket in self._candidate_cells(origin, r):
            for e in bucket.values():
                if not box.contains(e.lat, e.lon):
                    continue
                d = haversine_m(origin, GeoPoint(lat=e.lat, lon=e.lon))
                if d <= r:
                    out.append((e.item, d))
        return out
