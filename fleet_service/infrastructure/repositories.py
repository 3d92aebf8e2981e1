"""
Repository Pattern -- SQL implementations of ``VehicleRepository``.

Each repository receives an ``AsyncSession`` (unit-of-work) plus the event
dispatcher, and exposes the domain-relevant operations only.

Write path (``save``)
---------------------
* Never-persisted vehicle (``version == 0``): INSERT with ``version = 1``.
* Loaded vehicle: ``UPDATE ... SET version = version + 1
  WHERE id = :id AND version = :loaded_version``.  Zero rows updated means
  another writer got there first -> ``CONCURRENCY_CONFLICT``.
* The session is committed inside ``save``; events are dispatched only
  after the commit returns.

Radius search (``find_nearby``)
-------------------------------
1. Coarse pre-filter in SQL:
   * ``SqlVehicleRepository``     -- H3 cells covering the circle, or a
     latitude band when the radius needs too many rings.
   * ``PostGISVehicleRepository`` -- ``ST_DWithin`` on a geography
     expression (GIST-indexed by the migration).
2. Exact great-circle check in Python, so every backend answers the same.
"""

from __future__ import annotations

import logging
from typing import Optional

from geoalchemy2 import Geography
from geoalchemy2.functions import ST_DWithin, ST_MakePoint, ST_SetSRID
from sqlalchemy import Select, cast, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .database import is_postgres
from .events import DomainEventDispatcher
from .models import VehicleModel
from fleet_service.config import settings
from fleet_service.domain.entities import Vehicle
from fleet_service.domain.enums import VehicleStatus
from fleet_service.domain.geo import Location, cell_for, covering_cells, latitude_band
from fleet_service.domain.repository import VehicleRepository
from fleet_service.domain.results import Error, ErrorCode, Result

logger = logging.getLogger(__name__)


async def publish_pending(
    vehicle: Vehicle, dispatcher: DomainEventDispatcher
) -> None:
    """Dispatch and clear the vehicle's queued events (post-commit only)."""
    events = vehicle.pull_events()
    if events:
        await dispatcher.dispatch(events)


def to_aggregate(
    vehicle_id: str,
    latitude: float,
    longitude: float,
    status: str,
    assigned_user_id: Optional[str],
    version: int,
) -> Result[Vehicle]:
    """Rebuild an aggregate from stored fields; corrupt data -> INCONSISTENT_STATE."""
    try:
        parsed_status = VehicleStatus(status)
    except ValueError:
        return Result.fail(
            ErrorCode.INCONSISTENT_STATE,
            f"Vehicle {vehicle_id} has unrecognised stored status {status!r}.",
        )
    location = Location.create(latitude, longitude)
    if location.is_failure:
        return Result.fail(
            ErrorCode.INCONSISTENT_STATE,
            f"Vehicle {vehicle_id} has an invalid stored location.",
        )
    restored = Vehicle.restore(
        vehicle_id, location.value, parsed_status, assigned_user_id, version
    )
    if restored.is_failure:
        return Result.fail(
            ErrorCode.INCONSISTENT_STATE,
            f"Stored vehicle {vehicle_id} is inconsistent: {restored.error.message}",
        )
    return restored


def _persistence_error(action: str) -> Result:
    return Result.fail(ErrorCode.PERSISTENCE_ERROR, f"Failed to {action}.")


class SqlVehicleRepository(VehicleRepository):
    def __init__(
        self,
        session: AsyncSession,
        dispatcher: DomainEventDispatcher,
        h3_resolution: int = settings.h3_resolution,
        max_grid_rings: int = settings.max_grid_rings,
    ):
        if dispatcher is None:
            raise TypeError("dispatcher is required")
        self.session = session
        self.dispatcher = dispatcher
        self.h3_resolution = h3_resolution
        self.max_grid_rings = max_grid_rings

    # ── Reads ─────────────────────────────────────────────────────────

    async def get_by_id(self, vehicle_id: str) -> Result[Vehicle]:
        vehicle_id = (vehicle_id or "").strip()
        try:
            result = await self.session.execute(
                select(VehicleModel)
                .where(VehicleModel.id == vehicle_id)
                .execution_options(populate_existing=True)
            )
            row = result.scalar_one_or_none()
        except SQLAlchemyError:
            logger.exception("Failed to load vehicle %s", vehicle_id)
            return _persistence_error(f"load vehicle {vehicle_id}")

        if row is None:
            return Result.fail(
                ErrorCode.NOT_FOUND, f"Vehicle with ID '{vehicle_id}' not found."
            )
        loaded = self._row_to_aggregate(row)
        if loaded.is_failure:
            logger.warning(loaded.error.message)
        return loaded

    async def find_nearby(
        self, center: Location, radius_km: float
    ) -> Result[list[Vehicle]]:
        query = self._spatial_prefilter(select(VehicleModel), center, radius_km)
        rows = await self._fetch(query, "search nearby vehicles")
        if rows.is_failure:
            return rows
        return Result.ok(
            [
                v
                for v in self._rows_to_aggregates(rows.value)
                if center.distance_km(v.location) <= radius_km
            ]
        )

    async def find_by_user(self, user_id: str) -> Result[list[Vehicle]]:
        query = select(VehicleModel).where(
            VehicleModel.assigned_user_id == user_id
        )
        rows = await self._fetch(query, f"list vehicles for user {user_id}")
        if rows.is_failure:
            return rows
        return Result.ok(self._rows_to_aggregates(rows.value))

    # ── Writes ────────────────────────────────────────────────────────

    async def save(self, vehicle: Vehicle) -> Result[None]:
        if vehicle is None:
            raise TypeError("vehicle is required")

        location = vehicle.location
        values = dict(
            latitude=location.latitude,
            longitude=location.longitude,
            h3_cell=cell_for(location, self.h3_resolution),
            status=vehicle.status.value,
            assigned_user_id=vehicle.assigned_user_id,
        )

        try:
            if vehicle.version == 0:
                await self.session.execute(
                    insert(VehicleModel).values(id=vehicle.id, version=1, **values)
                )
            else:
                result = await self.session.execute(
                    update(VehicleModel)
                    .where(
                        VehicleModel.id == vehicle.id,
                        VehicleModel.version == vehicle.version,
                    )
                    .values(version=VehicleModel.version + 1, **values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    await self.session.rollback()
                    return await self._lost_race(vehicle)
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            if vehicle.version == 0:
                return Result.fail(
                    ErrorCode.ALREADY_EXISTS,
                    f"Vehicle with ID '{vehicle.id}' already exists.",
                )
            logger.exception("Constraint violation saving vehicle %s", vehicle.id)
            return _persistence_error(f"save vehicle {vehicle.id}")
        except SQLAlchemyError:
            logger.exception("Failed to save vehicle %s", vehicle.id)
            await self.session.rollback()
            return _persistence_error(f"save vehicle {vehicle.id}")

        vehicle.mark_persisted(vehicle.version + 1)
        await publish_pending(vehicle, self.dispatcher)
        return Result.ok()

    # ── Internals ─────────────────────────────────────────────────────

    def _spatial_prefilter(
        self, query: Select, center: Location, radius_km: float
    ) -> Select:
        cells = covering_cells(
            center, radius_km, self.h3_resolution, self.max_grid_rings
        )
        if cells is not None:
            return query.where(VehicleModel.h3_cell.in_(cells))
        low, high = latitude_band(center, radius_km)
        return query.where(VehicleModel.latitude.between(low, high))

    async def _fetch(self, query: Select, action: str) -> Result[list[VehicleModel]]:
        try:
            result = await self.session.execute(
                query.execution_options(populate_existing=True)
            )
            return Result.ok(list(result.scalars().all()))
        except SQLAlchemyError:
            logger.exception("Failed to %s", action)
            return _persistence_error(action)

    async def _lost_race(self, vehicle: Vehicle) -> Result[None]:
        """Report a failed compare-and-swap with the status now stored."""
        try:
            result = await self.session.execute(
                select(VehicleModel.status).where(VehicleModel.id == vehicle.id)
            )
            stored = result.scalar_one_or_none()
        except SQLAlchemyError:
            logger.exception("Failed to re-read vehicle %s", vehicle.id)
            return _persistence_error(f"save vehicle {vehicle.id}")

        if stored is None:
            return Result.fail(
                ErrorCode.NOT_FOUND, f"Vehicle with ID '{vehicle.id}' not found."
            )
        try:
            actual = VehicleStatus(stored)
        except ValueError:
            actual = VehicleStatus.UNKNOWN
        logger.info(
            "Concurrent write on vehicle %s (expected %s, found %s)",
            vehicle.id,
            vehicle.stored_status.value,
            actual.value,
        )
        return Result.from_error(Error.conflict(vehicle.stored_status, actual))

    @staticmethod
    def _row_to_aggregate(row: VehicleModel) -> Result[Vehicle]:
        return to_aggregate(
            row.id,
            row.latitude,
            row.longitude,
            row.status,
            row.assigned_user_id,
            row.version,
        )

    def _rows_to_aggregates(self, rows: list[VehicleModel]) -> list[Vehicle]:
        vehicles = []
        for row in rows:
            loaded = self._row_to_aggregate(row)
            if loaded.is_failure:
                logger.warning("Skipping vehicle: %s", loaded.error.message)
                continue
            vehicles.append(loaded.value)
        return vehicles


class PostGISVehicleRepository(SqlVehicleRepository):
    """Uses PostGIS ``ST_DWithin`` (GIST-indexed) for the coarse filter."""

    # Sphere radius differences between PostGIS and ``haversine_km``;
    # the exact check in ``find_nearby`` trims the margin.
    SLACK = 1.001

    def _spatial_prefilter(
        self, query: Select, center: Location, radius_km: float
    ) -> Select:
        return query.where(
            ST_DWithin(
                _geography(VehicleModel.longitude, VehicleModel.latitude),
                _geography(center.longitude, center.latitude),
                radius_km * 1000.0 * self.SLACK,
                False,  # use_spheroid: great-circle, like haversine_km
            )
        )


def _geography(lng, lat):
    """``CAST(ST_SetSRID(ST_MakePoint(lng, lat), 4326) AS geography(POINT,4326))``"""
    return cast(
        ST_SetSRID(ST_MakePoint(lng, lat), 4326),
        Geography(geometry_type="POINT", srid=4326),
    )


def build_repository(
    session: AsyncSession,
    dispatcher: DomainEventDispatcher,
    backend: str = settings.spatial_backend,
) -> SqlVehicleRepository:
    """Pick the spatial strategy for the session's database."""
    if backend == "auto":
        bind = session.bind
        backend = "postgis" if bind is not None and is_postgres(bind) else "h3"
    if backend == "postgis":
        return PostGISVehicleRepository(session, dispatcher)
    return SqlVehicleRepository(session, dispatcher)
