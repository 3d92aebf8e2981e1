"""
Command Service -- optimistic-concurrency state machine
=======================================================

Every command follows the same unit of work::

    load aggregate -> validate -> mutate -> persist

``update_vehicle_status`` is a compare-and-swap at the application layer:
the caller states the status it believes the vehicle has, and the write is
rejected (never merged) when reality has moved on.  The conflict carries
both the expected and the actual status so the caller can re-read and
resubmit.  Nothing here retries.

The repository's versioned ``save`` closes the gap between the check and
the write: of two callers that both pass the check, only one write lands;
the other gets ``CONCURRENCY_CONFLICT`` from the repository.
"""

from __future__ import annotations

import logging
from typing import Optional

from fleet_service.domain import policy
from fleet_service.domain.entities import Vehicle
from fleet_service.domain.enums import Role, VehicleStatus
from fleet_service.domain.geo import Location
from fleet_service.domain.repository import VehicleRepository
from fleet_service.domain.results import Error, ErrorCode, Result

logger = logging.getLogger(__name__)


def _require_id(value: Optional[str], code: ErrorCode, what: str) -> Optional[Result]:
    if value is None or not str(value).strip():
        return Result.fail(code, f"{what} is required.")
    return None


class VehicleCommandService:
    def __init__(self, repository: VehicleRepository):
        if repository is None:
            raise TypeError("repository is required")
        self.repository = repository

    async def update_vehicle_status(
        self,
        vehicle_id: str,
        expected_status: VehicleStatus,
        new_status: VehicleStatus,
        role: Optional[Role],
        user_id: Optional[str] = None,
    ) -> Result[VehicleStatus]:
        """
        Move a vehicle from ``expected_status`` to ``new_status``.

        ``user_id`` identifies the caller; it becomes the renter when the
        target is RENTED, and must match the renter when a regular user
        hands a vehicle back.
        """
        invalid = _require_id(vehicle_id, ErrorCode.INVALID_ID, "Vehicle ID")
        if invalid:
            return invalid

        # Role rules only depend on the request, so refuse before any I/O.
        allowed = policy.validate(role, expected_status, new_status)
        if allowed.is_failure:
            logger.info(
                "Rejected status change on %s (%s -> %s) for role %s: %s",
                vehicle_id,
                expected_status.value,
                new_status.value,
                role.value if role else None,
                allowed.error.code.value,
            )
            return Result.from_error(allowed.error)

        loaded = await self.repository.get_by_id(vehicle_id)
        if loaded.is_failure:
            return Result.from_error(loaded.error)
        vehicle = loaded.value

        if vehicle.status != expected_status:
            logger.info(
                "Concurrency conflict on %s: expected %s, actual %s",
                vehicle.id,
                expected_status.value,
                vehicle.status.value,
            )
            return Result.from_error(Error.conflict(expected_status, vehicle.status))

        if new_status == vehicle.status:
            # Idempotent re-assertion: nothing to write.
            return Result.ok(vehicle.status)

        changed = self._apply(vehicle, new_status, role, user_id)
        if changed.is_failure:
            return changed

        return await self._persist(vehicle, "status update")

    async def rent_vehicle(self, vehicle_id: str, user_id: str) -> Result[VehicleStatus]:
        invalid = _require_id(
            vehicle_id, ErrorCode.INVALID_ID, "Vehicle ID"
        ) or _require_id(user_id, ErrorCode.INVALID_USER_ID, "User ID")
        if invalid:
            return invalid

        loaded = await self.repository.get_by_id(vehicle_id)
        if loaded.is_failure:
            return Result.from_error(loaded.error)
        vehicle = loaded.value

        rented = vehicle.rent(user_id)
        if rented.is_failure:
            return rented
        return await self._persist(vehicle, f"rent by {user_id.strip()}")

    async def return_vehicle(self, vehicle_id: str, user_id: str) -> Result[VehicleStatus]:
        invalid = _require_id(
            vehicle_id, ErrorCode.INVALID_ID, "Vehicle ID"
        ) or _require_id(user_id, ErrorCode.INVALID_USER_ID, "User ID")
        if invalid:
            return invalid

        loaded = await self.repository.get_by_id(vehicle_id)
        if loaded.is_failure:
            return Result.from_error(loaded.error)
        vehicle = loaded.value

        returned = vehicle.return_(user_id)
        if returned.is_failure:
            logger.info(
                "Return of %s by %s refused: %s",
                vehicle.id,
                user_id,
                returned.error.message,
            )
            return returned
        return await self._persist(vehicle, f"return by {user_id.strip()}")

    async def update_vehicle_location(
        self, vehicle_id: str, latitude: float, longitude: float
    ) -> Result[Location]:
        """Apply a position decided upstream (e.g. by telemetry ingestion)."""
        invalid = _require_id(vehicle_id, ErrorCode.INVALID_ID, "Vehicle ID")
        if invalid:
            return invalid
        location = Location.create(latitude, longitude)
        if location.is_failure:
            return location

        loaded = await self.repository.get_by_id(vehicle_id)
        if loaded.is_failure:
            return Result.from_error(loaded.error)
        vehicle = loaded.value

        vehicle.update_location(location.value)
        saved = await self.repository.save(vehicle)
        if saved.is_failure:
            return Result.from_error(saved.error)
        return Result.ok(vehicle.location)

    async def register_vehicle(
        self,
        vehicle_id: str,
        latitude: float,
        longitude: float,
        status: VehicleStatus,
        role: Optional[Role],
    ) -> Result[Vehicle]:
        """Add a vehicle to the fleet.  Technicians only."""
        if role != Role.TECHNICIAN:
            return Result.fail(
                ErrorCode.FORBIDDEN, "Only technicians can register vehicles."
            )
        if status == VehicleStatus.RENTED:
            return Result.fail(
                ErrorCode.INVALID_STATUS,
                "A vehicle cannot be registered as Rented; rent it once registered.",
            )
        location = Location.create(latitude, longitude)
        if location.is_failure:
            return Result.from_error(location.error)

        created = Vehicle.create(vehicle_id, location.value, status)
        if created.is_failure:
            return created
        vehicle = created.value

        saved = await self.repository.save(vehicle)
        if saved.is_failure:
            return Result.from_error(saved.error)
        logger.info("Registered vehicle %s as %s", vehicle.id, vehicle.status.value)
        return Result.ok(vehicle)

    # ── Internals ─────────────────────────────────────────────────────

    @staticmethod
    def _apply(
        vehicle: Vehicle,
        new_status: VehicleStatus,
        role: Optional[Role],
        user_id: Optional[str],
    ) -> Result[VehicleStatus]:
        if new_status == VehicleStatus.RENTED:
            return vehicle.rent(user_id)
        if role == Role.REGULAR_USER and new_status == VehicleStatus.AVAILABLE:
            return vehicle.return_(user_id)
        return vehicle.update_status(new_status)

    async def _persist(self, vehicle: Vehicle, action: str) -> Result[VehicleStatus]:
        saved = await self.repository.save(vehicle)
        if saved.is_failure:
            logger.warning(
                "Could not persist %s of vehicle %s: %s",
                action,
                vehicle.id,
                saved.error.code.value,
            )
            return Result.from_error(saved.error)
        logger.info("Vehicle %s: %s -> %s", vehicle.id, action, vehicle.status.value)
        return Result.ok(vehicle.status)
