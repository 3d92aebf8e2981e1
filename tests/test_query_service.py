"""Tests for ``VehicleQueryService`` (radius search, listings, projections)."""

import math

import pytest
import pytest_asyncio

from fleet_service.application.queries import VehicleQueryService, VehicleSummary
from fleet_service.domain.enums import Role, VehicleStatus
from fleet_service.domain.results import ErrorCode
from fleet_service.infrastructure.memory import VehicleRecord
from tests.conftest import SEATTLE, make_vehicle

TACOMA = (47.25, -122.44)


@pytest_asyncio.fixture
async def fleet(memory_repo):
    for vehicle in (
        make_vehicle("NEAR-1", 47.601, -122.331),
        make_vehicle("NEAR-2", 47.61, -122.32, VehicleStatus.RENTED, "U1"),
        make_vehicle("NEAR-3", 47.59, -122.34, VehicleStatus.MAINTENANCE),
        make_vehicle("FAR-1", *TACOMA),
    ):
        assert (await memory_repo.save(vehicle)).is_success
    return memory_repo


@pytest.fixture
def queries(fleet):
    return VehicleQueryService(fleet, max_radius_km=100.0)


def ids(summaries):
    return sorted(s.vehicle_id for s in summaries)


class TestNearby:
    @pytest.mark.asyncio
    async def test_filters_by_radius(self, queries):
        result = await queries.get_nearby_vehicles(*SEATTLE, radius_km=5)
        assert ids(result.value) == ["NEAR-1", "NEAR-2", "NEAR-3"]

    @pytest.mark.asyncio
    async def test_includes_every_status(self, queries):
        result = await queries.get_nearby_vehicles(*SEATTLE, radius_km=5)
        statuses = {s.status for s in result.value}
        assert VehicleStatus.MAINTENANCE in statuses
        assert VehicleStatus.RENTED in statuses

    @pytest.mark.asyncio
    async def test_larger_radius_reaches_tacoma(self, queries):
        result = await queries.get_nearby_vehicles(*SEATTLE, radius_km=50)
        assert "FAR-1" in ids(result.value)

    @pytest.mark.asyncio
    async def test_invalid_centre_returns_empty_list(self, queries):
        result = await queries.get_nearby_vehicles(999, 0, radius_km=5)
        assert result.is_success
        assert result.value == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("radius", [0, -1, math.nan, math.inf, "wide"])
    async def test_bad_radius(self, queries, radius):
        result = await queries.get_nearby_vehicles(*SEATTLE, radius_km=radius)
        assert result.error.code == ErrorCode.INVALID_RADIUS

    @pytest.mark.asyncio
    async def test_radius_is_capped(self, fleet):
        queries = VehicleQueryService(fleet, max_radius_km=10.0)
        result = await queries.get_nearby_vehicles(*SEATTLE, radius_km=1000)
        assert "FAR-1" not in ids(result.value)

    @pytest.mark.asyncio
    async def test_corrupt_record_is_skipped(self, queries, fleet):
        fleet.put_record(VehicleRecord("BROKEN", 47.60, -122.33, "Rented", None, 4))
        result = await queries.get_nearby_vehicles(*SEATTLE, radius_km=5)
        assert "BROKEN" not in ids(result.value)

    @pytest.mark.asyncio
    async def test_returns_summaries(self, queries):
        result = await queries.get_nearby_vehicles(47.601, -122.331, radius_km=0.01)
        assert result.value == [
            VehicleSummary("NEAR-1", 47.601, -122.331, VehicleStatus.AVAILABLE)
        ]


class TestUserVehicles:
    @pytest.mark.asyncio
    async def test_lists_rentals(self, queries):
        result = await queries.get_user_vehicles("U1")
        assert ids(result.value) == ["NEAR-2"]

    @pytest.mark.asyncio
    async def test_user_without_rentals(self, queries):
        assert (await queries.get_user_vehicles("U9")).value == []

    @pytest.mark.asyncio
    async def test_blank_user(self, queries):
        result = await queries.get_user_vehicles(" ")
        assert result.error.code == ErrorCode.INVALID_USER_ID


class TestSingleVehicle:
    @pytest.mark.asyncio
    async def test_get_vehicle(self, queries):
        result = await queries.get_vehicle("NEAR-3")
        assert result.value.status == VehicleStatus.MAINTENANCE

    @pytest.mark.asyncio
    async def test_get_missing_vehicle(self, queries):
        assert (await queries.get_vehicle("nope")).error.code == ErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_get_corrupt_vehicle(self, queries, fleet):
        fleet.put_record(VehicleRecord("BROKEN", 47.60, -122.33, "Parked", None, 2))
        result = await queries.get_vehicle("BROKEN")
        assert result.error.code == ErrorCode.INCONSISTENT_STATE

    @pytest.mark.asyncio
    async def test_allowed_transitions(self, queries):
        user = await queries.get_allowed_transitions("NEAR-1", Role.REGULAR_USER)
        assert user.value == [VehicleStatus.RENTED]
        tech = await queries.get_allowed_transitions("NEAR-3", Role.TECHNICIAN)
        assert tech.value == [
            VehicleStatus.AVAILABLE,
            VehicleStatus.RENTED,
            VehicleStatus.OUT_OF_SERVICE,
        ]
