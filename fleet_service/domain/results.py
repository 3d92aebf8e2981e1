"""
Typed results for the domain and application layers.

Business failures are values, not exceptions: every operation that can be
refused returns a ``Result`` holding either a value or an ``Error``.
Exceptions are left for programmer errors (missing collaborators, ``None``
where an aggregate is required).

Error taxonomy
--------------
* **Validation**     -- INVALID_ID, INVALID_COORDINATE, INVALID_STATUS,
  INVALID_USER_ID, INVALID_RADIUS
* **Business rule**  -- INVALID_TRANSITION, FORBIDDEN, ALREADY_EXISTS
* **Concurrency**    -- CONCURRENCY_CONFLICT (carries expected / actual)
* **Lookup**         -- NOT_FOUND
* **Integrity**      -- INCONSISTENT_STATE (stored record breaks an invariant)
* **Storage**        -- PERSISTENCE_ERROR
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from .enums import VehicleStatus

T = TypeVar("T")


class ErrorCode(str, enum.Enum):
    INVALID_ID = "Vehicle.InvalidId"
    INVALID_COORDINATE = "Location.InvalidCoordinate"
    INVALID_STATUS = "Vehicle.InvalidStatus"
    INVALID_USER_ID = "Vehicle.InvalidUserId"
    INVALID_RADIUS = "Vehicle.InvalidRadius"
    INVALID_TRANSITION = "Vehicle.InvalidTransition"
    FORBIDDEN = "Vehicle.Forbidden"
    ALREADY_EXISTS = "Vehicle.AlreadyExists"
    CONCURRENCY_CONFLICT = "Vehicle.ConcurrencyConflict"
    NOT_FOUND = "Vehicle.NotFound"
    INCONSISTENT_STATE = "Vehicle.InconsistentState"
    PERSISTENCE_ERROR = "Vehicle.PersistenceError"


@dataclass(frozen=True)
class Error:
    code: ErrorCode
    message: str
    # Only populated for CONCURRENCY_CONFLICT
    expected: Optional[VehicleStatus] = None
    actual: Optional[VehicleStatus] = None

    @classmethod
    def conflict(cls, expected: VehicleStatus, actual: VehicleStatus) -> Error:
        return cls(
            ErrorCode.CONCURRENCY_CONFLICT,
            "Vehicle status has been modified by another caller. "
            f"Expected: {expected.value}, Actual: {actual.value}",
            expected=expected,
            actual=actual,
        )


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[Error] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    @classmethod
    def ok(cls, value: Optional[T] = None) -> Result[T]:
        return cls(value=value)

    @classmethod
    def fail(cls, code: ErrorCode, message: str) -> Result[T]:
        return cls(error=Error(code, message))

    @classmethod
    def from_error(cls, error: Error) -> Result[T]:
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value; a programmer error if called on a failure."""
        if self.error is not None:
            raise ValueError(f"unwrap() on failed result: {self.error.code.value}")
        return self.value  # type: ignore[return-value]
