"""
Fleet repository contract.

The application layer only ever sees this interface.  Implementations live
in ``fleet_service.infrastructure``.

Contract
--------
* Every method is awaitable and may fail; failures come back as ``Result``
  errors (``PERSISTENCE_ERROR`` for storage trouble) rather than exceptions.
* ``save`` is atomic per vehicle id: a never-persisted vehicle is inserted,
  a loaded one is written only if its stored ``version`` is unchanged
  (compare-and-swap).  Losing that race yields ``CONCURRENCY_CONFLICT``.
* Pending domain events are dispatched and cleared **only** after a
  successful write; on failure they stay queued on the aggregate.
* ``find_nearby`` order is unspecified.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from .entities import Vehicle
from .geo import Location
from .results import Result


class VehicleRepository(ABC):
    @abstractmethod
    async def get_by_id(self, vehicle_id: str) -> Result[Vehicle]: ...

    @abstractmethod
    async def save(self, vehicle: Vehicle) -> Result[None]: ...

    @abstractmethod
    async def find_nearby(
        self, center: Location, radius_km: float
    ) -> Result[list[Vehicle]]: ...

    @abstractmethod
    async def find_by_user(self, user_id: str) -> Result[list[Vehicle]]: ...
