"""
The ``Vehicle`` aggregate root.

Patterns used
-------------
- **Aggregate root**: every change to a vehicle's location, status and
  renter passes through the methods below.
- **Result values**: business-rule violations come back as failed
  ``Result`` objects; nothing here raises for a refused transition.
- **Deferred domain events**: successful changes queue an event on the
  aggregate.  The repository dispatches and clears the queue only after a
  successful write, so a failed write never produces a notification.

Invariants
----------
* ``status != UNKNOWN``
* ``assigned_user_id`` is set **iff** ``status == RENTED``
"""

from __future__ import annotations

from typing import Optional

from .enums import VehicleStatus
from .events import DomainEvent, VehicleLocationUpdated, VehicleStatusChanged
from .geo import Location
from .results import ErrorCode, Result


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _check_invariants(
    status: VehicleStatus, assigned_user_id: Optional[str]
) -> Optional[Result]:
    if not isinstance(status, VehicleStatus) or status == VehicleStatus.UNKNOWN:
        return Result.fail(ErrorCode.INVALID_STATUS, "Unsupported vehicle status.")
    if (status == VehicleStatus.RENTED) != (assigned_user_id is not None):
        return Result.fail(
            ErrorCode.INCONSISTENT_STATE,
            f"Vehicle in status {status.value} "
            f"{'must' if status == VehicleStatus.RENTED else 'must not'} "
            "have an assigned user.",
        )
    return None


class Vehicle:
    """Aggregate root for a rentable vehicle."""

    __slots__ = (
        "_id",
        "_location",
        "_status",
        "_assigned_user_id",
        "_version",
        "_stored_status",
        "_events",
    )

    def __init__(
        self,
        vehicle_id: str,
        location: Location,
        status: VehicleStatus,
        assigned_user_id: Optional[str] = None,
        version: int = 0,
    ):
        # Use ``create`` / ``restore``; they validate.
        self._id = vehicle_id
        self._location = location
        self._status = status
        self._assigned_user_id = assigned_user_id
        self._version = version
        self._stored_status = status
        self._events: list[DomainEvent] = []

    # ── Factories ─────────────────────────────────────────────────────

    @classmethod
    def create(
        cls,
        vehicle_id: str,
        location: Location,
        status: VehicleStatus = VehicleStatus.AVAILABLE,
        assigned_user_id: Optional[str] = None,
    ) -> Result[Vehicle]:
        """Build a vehicle entering the fleet (never persisted yet)."""
        return cls._build(vehicle_id, location, status, assigned_user_id, 0)

    @classmethod
    def restore(
        cls,
        vehicle_id: str,
        location: Location,
        status: VehicleStatus,
        assigned_user_id: Optional[str],
        version: int,
    ) -> Result[Vehicle]:
        """Rehydrate a stored vehicle.  Corrupt records are reported, not repaired."""
        return cls._build(vehicle_id, location, status, assigned_user_id, version)

    @classmethod
    def _build(cls, vehicle_id, location, status, assigned_user_id, version):
        if location is None:
            raise ValueError("location is required")
        clean_id = _clean(vehicle_id)
        if clean_id is None:
            return Result.fail(ErrorCode.INVALID_ID, "Vehicle id must be non-empty.")
        user_id = _clean(assigned_user_id)
        failure = _check_invariants(status, user_id)
        if failure is not None:
            return failure
        return Result.ok(cls(clean_id, location, status, user_id, version))

    # ── Read access ───────────────────────────────────────────────────

    @property
    def id(self) -> str:
        return self._id

    @property
    def location(self) -> Location:
        return self._location

    @property
    def status(self) -> VehicleStatus:
        return self._status

    @property
    def assigned_user_id(self) -> Optional[str]:
        return self._assigned_user_id

    @property
    def version(self) -> int:
        """Storage concurrency token; 0 until first persisted."""
        return self._version

    @property
    def stored_status(self) -> VehicleStatus:
        """Status as of the last load or successful save."""
        return self._stored_status

    @property
    def pending_events(self) -> tuple[DomainEvent, ...]:
        return tuple(self._events)

    # ── Transitions ───────────────────────────────────────────────────

    def update_status(self, new_status: VehicleStatus) -> Result[VehicleStatus]:
        if not isinstance(new_status, VehicleStatus) or new_status == VehicleStatus.UNKNOWN:
            return Result.fail(ErrorCode.INVALID_STATUS, "Unsupported vehicle status.")

        if new_status == self._status:
            return Result.ok(self._status)

        if new_status == VehicleStatus.RENTED:
            return Result.fail(
                ErrorCode.INVALID_TRANSITION,
                "A vehicle can only become Rented through a rental.",
            )

        self._status = new_status
        self._assigned_user_id = None
        self._raise(VehicleStatusChanged(self._id, new_status))
        return Result.ok(self._status)

    def update_location(self, location: Location) -> Result[Location]:
        if location is None:
            raise ValueError("location is required")
        self._location = location
        self._raise(
            VehicleLocationUpdated(self._id, location.latitude, location.longitude)
        )
        return Result.ok(location)

    def rent(self, user_id: str) -> Result[VehicleStatus]:
        renter = _clean(user_id)
        if renter is None:
            return Result.fail(ErrorCode.INVALID_USER_ID, "User id is required.")
        if self._status != VehicleStatus.AVAILABLE:
            return Result.fail(
                ErrorCode.INVALID_TRANSITION,
                "Vehicle is not available for rent. "
                f"Current status: {self._status.value}",
            )
        self._status = VehicleStatus.RENTED
        self._assigned_user_id = renter
        self._raise(VehicleStatusChanged(self._id, VehicleStatus.RENTED))
        return Result.ok(self._status)

    def return_(self, user_id: str) -> Result[VehicleStatus]:
        """Hand the vehicle back.  Only the current renter may return it."""
        returner = _clean(user_id)
        if returner is None:
            return Result.fail(ErrorCode.INVALID_USER_ID, "User id is required.")
        if self._status != VehicleStatus.RENTED:
            return Result.fail(
                ErrorCode.INVALID_TRANSITION,
                "Vehicle is not currently rented. "
                f"Current status: {self._status.value}",
            )
        if returner != self._assigned_user_id:
            return Result.fail(
                ErrorCode.INVALID_TRANSITION,
                "Vehicle is rented by a different user.",
            )
        self._status = VehicleStatus.AVAILABLE
        self._assigned_user_id = None
        self._raise(VehicleStatusChanged(self._id, VehicleStatus.AVAILABLE))
        return Result.ok(self._status)

    # ── Events ────────────────────────────────────────────────────────

    def _raise(self, event: DomainEvent) -> None:
        self._events.append(event)

    def pull_events(self) -> list[DomainEvent]:
        """Return and clear the pending events."""
        events, self._events = self._events, []
        return events

    def mark_persisted(self, version: int) -> None:
        """Called by repositories after a successful write."""
        self._version = version
        self._stored_status = self._status

    def __repr__(self) -> str:
        return (
            f"Vehicle(id={self._id!r}, status={self._status.value}, "
            f"location=({self._location.latitude}, {self._location.longitude}), "
            f"assigned_user_id={self._assigned_user_id!r}, version={self._version})"
        )
