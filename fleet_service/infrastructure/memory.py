"""
In-memory ``VehicleRepository`` for local development and tests.

Stores immutable snapshots keyed by vehicle id, never live aggregates:
every ``get_by_id`` hands out a fresh ``Vehicle``, so concurrent callers
never share mutable state.  The version check and the write in ``save``
run without an intervening ``await``, which makes them atomic on the
event loop.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .events import DomainEventDispatcher
from .repositories import publish_pending, to_aggregate
from fleet_service.domain.entities import Vehicle
from fleet_service.domain.enums import VehicleStatus
from fleet_service.domain.geo import Location, haversine_km
from fleet_service.domain.repository import VehicleRepository
from fleet_service.domain.results import Error, ErrorCode, Result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VehicleRecord:
    vehicle_id: str
    latitude: float
    longitude: float
    status: str
    assigned_user_id: Optional[str]
    version: int


class InMemoryVehicleRepository(VehicleRepository):
    def __init__(self, dispatcher: DomainEventDispatcher):
        if dispatcher is None:
            raise TypeError("dispatcher is required")
        self.dispatcher = dispatcher
        self._records: dict[str, VehicleRecord] = {}

    # ── Reads ─────────────────────────────────────────────────────────

    async def get_by_id(self, vehicle_id: str) -> Result[Vehicle]:
        vehicle_id = (vehicle_id or "").strip()
        record = self._records.get(vehicle_id)
        if record is None:
            return Result.fail(
                ErrorCode.NOT_FOUND, f"Vehicle with ID '{vehicle_id}' not found."
            )
        return self._load(record)

    async def find_nearby(
        self, center: Location, radius_km: float
    ) -> Result[list[Vehicle]]:
        return Result.ok(
            self._load_many(
                r
                for r in self._records.values()
                if haversine_km(
                    center.latitude, center.longitude, r.latitude, r.longitude
                )
                <= radius_km
            )
        )

    async def find_by_user(self, user_id: str) -> Result[list[Vehicle]]:
        return Result.ok(
            self._load_many(
                r for r in self._records.values() if r.assigned_user_id == user_id
            )
        )

    # ── Writes ────────────────────────────────────────────────────────

    async def save(self, vehicle: Vehicle) -> Result[None]:
        if vehicle is None:
            raise TypeError("vehicle is required")

        current = self._records.get(vehicle.id)
        if vehicle.version == 0 and current is not None:
            return Result.fail(
                ErrorCode.ALREADY_EXISTS,
                f"Vehicle with ID '{vehicle.id}' already exists.",
            )
        if vehicle.version > 0:
            if current is None:
                return Result.fail(
                    ErrorCode.NOT_FOUND, f"Vehicle with ID '{vehicle.id}' not found."
                )
            if current.version != vehicle.version:
                try:
                    actual = VehicleStatus(current.status)
                except ValueError:
                    actual = VehicleStatus.UNKNOWN
                return Result.from_error(Error.conflict(vehicle.stored_status, actual))

        self._records[vehicle.id] = VehicleRecord(
            vehicle_id=vehicle.id,
            latitude=vehicle.location.latitude,
            longitude=vehicle.location.longitude,
            status=vehicle.status.value,
            assigned_user_id=vehicle.assigned_user_id,
            version=vehicle.version + 1,
        )
        vehicle.mark_persisted(vehicle.version + 1)
        await publish_pending(vehicle, self.dispatcher)
        return Result.ok()

    # ── Test / maintenance helpers ────────────────────────────────────

    def put_record(self, record: VehicleRecord) -> None:
        """Store a raw record as-is (bypasses validation)."""
        self._records[record.vehicle_id] = record

    # ── Internals ─────────────────────────────────────────────────────

    @staticmethod
    def _load(record: VehicleRecord) -> Result[Vehicle]:
        return to_aggregate(
            record.vehicle_id,
            record.latitude,
            record.longitude,
            record.status,
            record.assigned_user_id,
            record.version,
        )

    def _load_many(self, records) -> list[Vehicle]:
        vehicles = []
        for record in records:
            loaded = self._load(record)
            if loaded.is_failure:
                logger.warning("Skipping vehicle: %s", loaded.error.message)
                continue
            vehicles.append(loaded.value)
        return vehicles
