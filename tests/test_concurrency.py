"""
Concurrency tests: two callers racing to change the same vehicle.

For any pair of concurrent updates that both expect the same current
status, exactly one write lands and the other receives a conflict that
names the status the winner left behind.
"""

import asyncio

import pytest

from fleet_service.application.commands import VehicleCommandService
from fleet_service.domain.enums import Role, VehicleStatus
from fleet_service.domain.results import ErrorCode
from fleet_service.infrastructure.memory import InMemoryVehicleRepository
from fleet_service.infrastructure.repositories import SqlVehicleRepository
from tests.conftest import make_vehicle


class YieldingRepository(InMemoryVehicleRepository):
    """Hands control back to the event loop after every load."""

    async def get_by_id(self, vehicle_id):
        result = await super().get_by_id(vehicle_id)
        await asyncio.sleep(0)
        return result


class TestRacingStatusUpdates:
    @pytest.mark.asyncio
    async def test_exactly_one_update_wins(self, dispatcher, recorder):
        repo = YieldingRepository(dispatcher)
        await repo.save(make_vehicle())
        commands = VehicleCommandService(repo)

        first, second = await asyncio.gather(
            commands.update_vehicle_status(
                "V1", VehicleStatus.AVAILABLE, VehicleStatus.MAINTENANCE, Role.TECHNICIAN
            ),
            commands.update_vehicle_status(
                "V1", VehicleStatus.AVAILABLE, VehicleStatus.OUT_OF_SERVICE, Role.TECHNICIAN
            ),
        )

        results = [first, second]
        winners = [r for r in results if r.is_success]
        losers = [r for r in results if r.is_failure]
        assert len(winners) == 1
        assert len(losers) == 1

        conflict = losers[0].error
        assert conflict.code == ErrorCode.CONCURRENCY_CONFLICT
        assert conflict.expected == VehicleStatus.AVAILABLE
        assert conflict.actual == winners[0].value

        stored = (await repo.get_by_id("V1")).value
        assert stored.status == winners[0].value
        assert [e.status for e in recorder.events] == [winners[0].value]

    @pytest.mark.asyncio
    async def test_two_renters_one_vehicle(self, dispatcher):
        repo = YieldingRepository(dispatcher)
        await repo.save(make_vehicle())
        commands = VehicleCommandService(repo)

        results = await asyncio.gather(
            commands.rent_vehicle("V1", "U1"),
            commands.rent_vehicle("V1", "U2"),
        )

        assert sum(r.is_success for r in results) == 1
        stored = (await repo.get_by_id("V1")).value
        assert stored.status == VehicleStatus.RENTED
        assert stored.assigned_user_id in {"U1", "U2"}

    @pytest.mark.asyncio
    async def test_sequential_updates_both_apply(self, memory_repo):
        await memory_repo.save(make_vehicle())
        commands = VehicleCommandService(memory_repo)

        step1 = await commands.update_vehicle_status(
            "V1", VehicleStatus.AVAILABLE, VehicleStatus.MAINTENANCE, Role.TECHNICIAN
        )
        step2 = await commands.update_vehicle_status(
            "V1", VehicleStatus.MAINTENANCE, VehicleStatus.AVAILABLE, Role.TECHNICIAN
        )
        assert step1.is_success and step2.is_success


class TestSqlCompareAndSwap:
    @pytest.mark.asyncio
    async def test_second_writer_loses(self, session_factory, dispatcher):
        async with session_factory() as session:
            await SqlVehicleRepository(session, dispatcher).save(make_vehicle())

        async with session_factory() as s1, session_factory() as s2:
            commands_a = VehicleCommandService(SqlVehicleRepository(s1, dispatcher))
            repo_b = SqlVehicleRepository(s2, dispatcher)

            # B reads before A writes
            stale = (await repo_b.get_by_id("V1")).value

            won = await commands_a.update_vehicle_status(
                "V1", VehicleStatus.AVAILABLE, VehicleStatus.OUT_OF_SERVICE, Role.TECHNICIAN
            )
            assert won.is_success

            stale.rent("U1")
            lost = await repo_b.save(stale)
            assert lost.error.code == ErrorCode.CONCURRENCY_CONFLICT
            assert lost.error.actual == VehicleStatus.OUT_OF_SERVICE

        async with session_factory() as session:
            final = (await SqlVehicleRepository(session, dispatcher).get_by_id("V1")).value
            assert final.status == VehicleStatus.OUT_OF_SERVICE
            assert final.assigned_user_id is None
