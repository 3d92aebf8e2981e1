"""
SQLAlchemy ORM models  (PostgreSQL + PostGIS in production, any SQL
dialect for development and tests).

Tables
------
* ``vehicles`` -- one row per vehicle snapshot, overwritten in place.

Indexes
-------
* **B-Tree** on ``h3_cell`` -- portable spatial pre-filter for radius search.
* **B-Tree** on ``latitude`` -- latitude-band fallback for large radii.
* **B-Tree** on ``status`` and ``assigned_user_id`` -- fleet listings.
* **GIST** expression index on
  ``geography(ST_SetSRID(ST_MakePoint(longitude, latitude), 4326))``,
  created by the migration (PostgreSQL only) and used by ``ST_DWithin``.

Concurrency
-----------
``version`` is bumped on every write; updates are issued as
``UPDATE ... WHERE id = :id AND version = :loaded_version``.
"""

from sqlalchemy import Column, DateTime, Float, Index, Integer, String, func

from .database import Base


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(String(64), primary_key=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    h3_cell = Column(String(20), nullable=False)
    # Stored as the enum value; parsed by the repository so that an
    # unrecognised value surfaces as INCONSISTENT_STATE instead of a crash.
    status = Column(String(20), nullable=False)
    assigned_user_id = Column(String(128), nullable=True)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_vehicles_h3_cell", "h3_cell"),
        Index("idx_vehicles_latitude", "latitude"),
        Index("idx_vehicles_status", "status"),
        Index("idx_vehicles_assigned_user", "assigned_user_id"),
    )
