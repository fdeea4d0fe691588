"""
SQLAlchemy ORM model for the `places` table.

`cell_row` / `cell_col` form the spatial index key. They are derived from latitude/longitude
by mapper listeners on every insert and update, inside the same flush as the attribute
write, so a read after a commit always sees a key matching the stored position.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Float, Index, Integer, String, Text, event
from sqlalchemy.orm import DeclarativeBase

from halalmap.core.geo import GRID_CELL_DEG, grid_cell


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class PlaceRecord(Base):
    __tablename__ = "places"

    id          = Column(Integer, primary_key=True, autoincrement=True)
    name        = Column(String(255), nullable=False)
    type        = Column(String(50), nullable=False)
    latitude    = Column(Float, nullable=False)
    longitude   = Column(Float, nullable=False)
    cell_row    = Column(Integer, nullable=False)
    cell_col    = Column(Integer, nullable=False)
    city        = Column(String(100), nullable=True)
    address     = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    phone       = Column(String(50), nullable=True)
    website     = Column(String(255), nullable=True)
    verified    = Column(Boolean, nullable=False, default=False)
    created_at  = Column(DateTime, nullable=False, default=utcnow)
    updated_at  = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("type IN ('restaurant', 'mosque')", name="ck_places_type"),
        CheckConstraint("latitude BETWEEN -90 AND 90", name="ck_places_latitude"),
        CheckConstraint("longitude BETWEEN -180 AND 180", name="ck_places_longitude"),
        Index("idx_places_cell", "cell_row", "cell_col"),
        Index("idx_places_type", "type"),
        Index("idx_places_verified", "verified"),
        Index("idx_places_type_verified", "type", "verified"),
    )

    def __repr__(self) -> str:
        return f"<PlaceRecord id={self.id} name={self.name!r} type={self.type}>"


@event.listens_for(PlaceRecord, "before_insert")
@event.listens_for(PlaceRecord, "before_update")
def _sync_cell_key(mapper, connection, target: PlaceRecord) -> None:
    target.cell_row, target.cell_col = grid_cell(target.latitude, target.longitude, GRID_CELL_DEG)
