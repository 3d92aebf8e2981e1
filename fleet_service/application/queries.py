"""
Query Service -- read-only projections over the repository.

Never mutates state.  ``get_nearby_vehicles`` sits behind a public surface,
so malformed coordinates produce an empty list rather than an error.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from fleet_service.config import settings
from fleet_service.domain import policy
from fleet_service.domain.entities import Vehicle
from fleet_service.domain.enums import Role, VehicleStatus
from fleet_service.domain.geo import Location
from fleet_service.domain.repository import VehicleRepository
from fleet_service.domain.results import ErrorCode, Result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VehicleSummary:
    vehicle_id: str
    latitude: float
    longitude: float
    status: VehicleStatus

    @classmethod
    def from_vehicle(cls, vehicle: Vehicle) -> VehicleSummary:
        return cls(
            vehicle_id=vehicle.id,
            latitude=vehicle.location.latitude,
            longitude=vehicle.location.longitude,
            status=vehicle.status,
        )


class VehicleQueryService:
    def __init__(
        self,
        repository: VehicleRepository,
        max_radius_km: float = settings.max_search_radius_km,
    ):
        if repository is None:
            raise TypeError("repository is required")
        self.repository = repository
        self.max_radius_km = max_radius_km

    async def get_nearby_vehicles(
        self,
        latitude: float,
        longitude: float,
        radius_km: float = settings.default_search_radius_km,
    ) -> Result[list[VehicleSummary]]:
        center = Location.create(latitude, longitude)
        if center.is_failure:
            logger.debug(
                "Nearby search with invalid centre (%r, %r)", latitude, longitude
            )
            return Result.ok([])

        try:
            radius = float(radius_km)
        except (TypeError, ValueError):
            radius = math.nan
        if not math.isfinite(radius) or radius <= 0:
            return Result.fail(
                ErrorCode.INVALID_RADIUS, "Radius must be greater than zero."
            )
        radius = min(radius, self.max_radius_km)

        found = await self.repository.find_nearby(center.value, radius)
        if found.is_failure:
            return Result.from_error(found.error)
        return Result.ok([VehicleSummary.from_vehicle(v) for v in found.value])

    async def get_user_vehicles(self, user_id: str) -> Result[list[VehicleSummary]]:
        if user_id is None or not str(user_id).strip():
            return Result.fail(
                ErrorCode.INVALID_USER_ID, "User ID cannot be null or empty."
            )
        found = await self.repository.find_by_user(str(user_id).strip())
        if found.is_failure:
            return Result.from_error(found.error)
        return Result.ok([VehicleSummary.from_vehicle(v) for v in found.value])

    async def get_vehicle(self, vehicle_id: str) -> Result[VehicleSummary]:
        loaded = await self.repository.get_by_id(vehicle_id)
        if loaded.is_failure:
            return Result.from_error(loaded.error)
        return Result.ok(VehicleSummary.from_vehicle(loaded.value))

    async def get_allowed_transitions(
        self, vehicle_id: str, role: Optional[Role]
    ) -> Result[list[VehicleStatus]]:
        """Statuses ``role`` may move this vehicle to right now."""
        loaded = await self.repository.get_by_id(vehicle_id)
        if loaded.is_failure:
            return Result.from_error(loaded.error)
        return Result.ok(policy.allowed_targets(role, loaded.value.status))
