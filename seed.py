"""
Seed script -- populates the database with a sample fleet for reviewers.

Run after migrations:
    python seed.py

Creates 15 vehicles around downtown Seattle:
  - 10 AVAILABLE
  - 2 RENTED (to users ``user-ada`` and ``user-grace``)
  - 2 MAINTENANCE
  - 1 OUT_OF_SERVICE

Vehicles are built through the domain factory and stored through the
repository, so the seed data obeys the same invariants as live traffic.
"""

import asyncio
import sys

from sqlalchemy import func, select

from fleet_service.domain.entities import Vehicle
from fleet_service.domain.enums import VehicleStatus
from fleet_service.domain.geo import Location
from fleet_service.infrastructure.database import async_session_factory, engine
from fleet_service.infrastructure.events import build_dispatcher
from fleet_service.infrastructure.models import VehicleModel
from fleet_service.infrastructure.repositories import build_repository

# Pike Place Market (approx)
CENTER_LAT, CENTER_LNG = 47.6097, -122.3422


VEHICLES = [
    # Available around the centre
    {"id": "SEA-001", "lat": 47.6062, "lng": -122.3321, "status": VehicleStatus.AVAILABLE},
    {"id": "SEA-002", "lat": 47.6101, "lng": -122.3421, "status": VehicleStatus.AVAILABLE},
    {"id": "SEA-003", "lat": 47.6154, "lng": -122.3376, "status": VehicleStatus.AVAILABLE},
    {"id": "SEA-004", "lat": 47.6205, "lng": -122.3493, "status": VehicleStatus.AVAILABLE},
    {"id": "SEA-005", "lat": 47.6009, "lng": -122.3343, "status": VehicleStatus.AVAILABLE},
    {"id": "SEA-006", "lat": 47.6145, "lng": -122.3200, "status": VehicleStatus.AVAILABLE},
    {"id": "SEA-007", "lat": 47.6290, "lng": -122.3425, "status": VehicleStatus.AVAILABLE},
    {"id": "SEA-008", "lat": 47.5952, "lng": -122.3316, "status": VehicleStatus.AVAILABLE},
    # Further out (Ballard, Fremont) -- outside a 5 km search from the centre
    {"id": "SEA-009", "lat": 47.6687, "lng": -122.3847, "status": VehicleStatus.AVAILABLE},
    {"id": "SEA-010", "lat": 47.6510, "lng": -122.3505, "status": VehicleStatus.AVAILABLE},
    # Rented
    {"id": "SEA-011", "lat": 47.6080, "lng": -122.3350, "status": VehicleStatus.RENTED, "user": "user-ada"},
    {"id": "SEA-012", "lat": 47.6170, "lng": -122.3560, "status": VehicleStatus.RENTED, "user": "user-grace"},
    # Workshop
    {"id": "SEA-013", "lat": 47.5800, "lng": -122.3350, "status": VehicleStatus.MAINTENANCE},
    {"id": "SEA-014", "lat": 47.5805, "lng": -122.3355, "status": VehicleStatus.MAINTENANCE},
    {"id": "SEA-015", "lat": 47.5810, "lng": -122.3360, "status": VehicleStatus.OUT_OF_SERVICE},
]


async def seed():
    dispatcher = build_dispatcher()
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(select(func.count()).select_from(VehicleModel))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        repo = build_repository(session, dispatcher)
        for v in VEHICLES:
            location = Location.create(v["lat"], v["lng"]).unwrap()
            vehicle = Vehicle.create(
                v["id"], location, v["status"], assigned_user_id=v.get("user")
            ).unwrap()
            saved = await repo.save(vehicle)
            if saved.is_failure:
                print(f"  Failed to create {v['id']}: {saved.error.message}")
                sys.exit(1)
        print(f"  Created {len(VEHICLES)} vehicles")

    print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
