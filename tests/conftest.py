"""
Shared test fixtures.

SQL tests run against a throw-away SQLite file (via aiosqlite) so no
PostgreSQL / PostGIS / Redis is needed.  The ``vehicles`` table only uses
portable column types; the PostGIS expression index lives in the
migration and is not created here.
"""

from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from fleet_service.domain.entities import Vehicle
from fleet_service.domain.enums import VehicleStatus
from fleet_service.domain.geo import Location
from fleet_service.infrastructure.database import Base
from fleet_service.infrastructure.events import DomainEventDispatcher
from fleet_service.infrastructure.memory import InMemoryVehicleRepository
from fleet_service.infrastructure.models import VehicleModel  # noqa: F401  (registers table)

# Downtown Seattle
SEATTLE = (47.60, -122.33)


def make_vehicle(
    vehicle_id: str = "V1",
    lat: float = SEATTLE[0],
    lng: float = SEATTLE[1],
    status: VehicleStatus = VehicleStatus.AVAILABLE,
    user: Optional[str] = None,
) -> Vehicle:
    return Vehicle.create(
        vehicle_id, Location.create(lat, lng).unwrap(), status, user
    ).unwrap()


class RecordingHandler:
    """Event handler that remembers everything it was given."""

    def __init__(self):
        self.events = []

    async def __call__(self, event):
        self.events.append(event)


# ── Events / in-memory storage ────────────────────────────────────────


@pytest.fixture
def recorder() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def dispatcher(recorder) -> DomainEventDispatcher:
    d = DomainEventDispatcher()
    d.register_all(recorder)
    return d


@pytest.fixture
def memory_repo(dispatcher) -> InMemoryVehicleRepository:
    return InMemoryVehicleRepository(dispatcher)


# ── SQL storage (SQLite file) ─────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Create tables in a fresh database, yield a session factory, dispose."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'fleet.db'}", poolclass=NullPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
