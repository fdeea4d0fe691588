"""
Place repository (SQL).

Besides plain reads and admin writes, this is the SQL implementation of the spatial engine:
`find_within_radius` narrows candidates through the indexed grid key and a lat/lon range
(an exact spherical bounding box), then keeps a row only if its haversine distance is within
the radius. The returned distance is that haversine value, never the box approximation.

All SQLAlchemy failures leave this module as `TransientStorageError`.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import timedelta
from typing import Iterable, Iterator

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.exc import SQLAlchemyError

from halalmap.core.errors import NotFoundError, TransientStorageError, ValidationError
from halalmap.core.geo import GRID_CELL_DEG, GeoPoint, bounding_box, cell_ranges, haversine_m
from halalmap.domain.models import CityStats, Place, PlaceCreate, PlaceUpdate, Statistics
from halalmap.spatial.engine import Match
from halalmap.storage.db import Database
from halalmap.storage.models import PlaceRecord, utcnow

logger = logging.getLogger(__name__)

_NOT_NULL_FIELDS = ("name", "type", "latitude", "longitude", "verified")
_RECENT_WINDOW = timedelta(days=7)


def _to_place(record: PlaceRecord) -> Place:
    return Place.model_validate(record)


class PlaceRepository:
    def __init__(self, database: Database):
        self._db = database

    @contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            logger.warning("Storage failure during %s: %s", action, exc.__class__.__name__)
            raise TransientStorageError(f"Storage failure during {action}") from exc

    # ------------------------------------------------------------------ spatial

    def find_within_radius(
        self, center: GeoPoint, radius_m: float, place_type: str | None = None
    ) -> list[Match]:
        r = float(radius_m)
        if r < 0:
            return []
        box = bounding_box(center, r)
        (row_lo, row_hi), col_spans = cell_ranges(box, GRID_CELL_DEG)

        lon_clauses = [
            and_(PlaceRecord.cell_col.between(col_lo, col_hi), PlaceRecord.longitude.between(lon_lo, lon_hi))
            for (col_lo, col_hi), (lon_lo, lon_hi) in zip(col_spans, box.lon_ranges)
        ]
        stmt = select(PlaceRecord).where(
            PlaceRecord.cell_row.between(row_lo, row_hi),
            PlaceRecord.latitude.between(box.min_lat, box.max_lat),
            or_(*lon_clauses),
        )
        if place_type is not None:
            stmt = stmt.where(PlaceRecord.type == place_type)

        with self._guard("nearby search"), self._db.session() as session:
            records = session.execute(stmt).scalars().all()
            out: list[Match] = []
            for rec in records:
                d = haversine_m(center, GeoPoint(lat=rec.latitude, lon=rec.longitude))
                if d <= r:
                    out.append(Match(_to_place(rec), d))

        logger.debug("SQL radius query: %d candidates, %d within %.0fm", len(records), len(out), r)
        return out

    # ------------------------------------------------------------------ reads

    def list_places(
        self,
        *,
        place_type: str | None = None,
        verified: bool | None = None,
        city: str | None = None,
    ) -> list[Place]:
        """All places matching the filters, ordered by city then name (no distance)."""
        stmt = select(PlaceRecord)
        if place_type is not None:
            stmt = stmt.where(PlaceRecord.type == place_type)
        if verified is not None:
            stmt = stmt.where(PlaceRecord.verified == verified)
        if city:
            stmt = stmt.where(func.lower(PlaceRecord.city).contains(city.strip().lower(), autoescape=True))
        stmt = stmt.order_by(PlaceRecord.city, PlaceRecord.name, PlaceRecord.id)

        with self._guard("listing"), self._db.session() as session:
            return [_to_place(rec) for rec in session.execute(stmt).scalars()]

    def get(self, place_id: int) -> Place:
        with self._guard("lookup"), self._db.session() as session:
            record = session.get(PlaceRecord, place_id)
            if record is None:
                raise NotFoundError(place_id)
            return _to_place(record)

    def cities(self) -> list[CityStats]:
        total = func.count(PlaceRecord.id).label("total")
        stmt = (
            select(
                PlaceRecord.city,
                total,
                func.sum(case((PlaceRecord.type == "restaurant", 1), else_=0)).label("restaurants"),
                func.sum(case((PlaceRecord.type == "mosque", 1), else_=0)).label("mosques"),
            )
            .where(PlaceRecord.city.is_not(None))
            .group_by(PlaceRecord.city)
            .order_by(total.desc(), PlaceRecord.city)
        )
        with self._guard("city stats"), self._db.session() as session:
            return [
                CityStats(city=row.city, count=row.total, restaurants=row.restaurants or 0, mosques=row.mosques or 0)
                for row in session.execute(stmt)
            ]

    def statistics(self) -> Statistics:
        since = utcnow() - _RECENT_WINDOW
        stmt = select(
            func.count(PlaceRecord.id),
            func.sum(case((PlaceRecord.type == "restaurant", 1), else_=0)),
            func.sum(case((PlaceRecord.type == "mosque", 1), else_=0)),
            func.sum(case((PlaceRecord.verified.is_(True), 1), else_=0)),
            func.count(func.distinct(PlaceRecord.city)),
            func.sum(case((PlaceRecord.created_at >= since, 1), else_=0)),
        )
        with self._guard("statistics"), self._db.session() as session:
            total, restaurants, mosques, verified, cities, recent = session.execute(stmt).one()

        total = int(total or 0)
        verified = int(verified or 0)
        return Statistics(
            total_places=total,
            total_restaurants=int(restaurants or 0),
            total_mosques=int(mosques or 0),
            verified_places=verified,
            unverified_places=total - verified,
            total_cities=int(cities or 0),
            recent_additions=int(recent or 0),
        )

    # ------------------------------------------------------------------ writes

    def create(self, payload: PlaceCreate) -> Place:
        """Insert a place; the spatial key is computed in the same flush."""
        with self._guard("create"), self._db.session() as session:
            record = PlaceRecord(**payload.model_dump())
            session.add(record)
            session.flush()
            place = _to_place(record)
        logger.info("Created place id=%s name=%r", place.id, place.name)
        return place

    def bulk_create(self, payloads: Iterable[PlaceCreate]) -> int:
        with self._guard("bulk create"), self._db.session() as session:
            records = [PlaceRecord(**p.model_dump()) for p in payloads]
            session.add_all(records)
        logger.info("Inserted %d places", len(records))
        return len(records)

    def update(self, place_id: int, payload: PlaceUpdate) -> Place:
        """Partial update under a row lock scoped to this place."""
        changes = payload.model_dump(exclude_unset=True)
        for field in _NOT_NULL_FIELDS:
            if field in changes and changes[field] is None:
                raise ValidationError(field, f"{field} cannot be null", None)

        with self._guard("update"), self._db.session() as session:
            record = self._locked(session, place_id)
            for key, value in changes.items():
                setattr(record, key, value)
            session.flush()
            place = _to_place(record)
        logger.info("Updated place id=%s fields=%s", place_id, sorted(changes))
        return place

    def toggle_verified(self, place_id: int) -> Place:
        with self._guard("verify toggle"), self._db.session() as session:
            record = self._locked(session, place_id)
            record.verified = not record.verified
            session.flush()
            place = _to_place(record)
        logger.info("Place id=%s verified=%s", place_id, place.verified)
        return place

    def delete(self, place_id: int) -> Place:
        with self._guard("delete"), self._db.session() as session:
            record = self._locked(session, place_id)
            place = _to_place(record)
            session.delete(record)
        logger.info("Deleted place id=%s", place_id)
        return place

    @staticmethod
    def _locked(session, place_id: int) -> PlaceRecord:
        stmt = select(PlaceRecord).where(PlaceRecord.id == place_id).with_for_update()
        record = session.execute(stmt).scalar_one_or_none()
        if record is None:
            raise NotFoundError(place_id)
        return record
