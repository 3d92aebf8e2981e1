"""
Role-gated status transition rules.

Decision table: role -> set of allowed ``(from, to)`` pairs.

* Regular users may only rent (AVAILABLE -> RENTED) or return
  (RENTED -> AVAILABLE).
* Technicians may move a vehicle between any two real statuses.
* Re-asserting the current status (``from == to``) is a no-op that every
  role may request.
* UNKNOWN is never a legal target.

All functions are pure.
"""

from __future__ import annotations

from itertools import permutations
from typing import Optional

from .enums import ASSIGNABLE_STATUSES, Role, VehicleStatus
from .results import ErrorCode, Result

Transition = tuple[VehicleStatus, VehicleStatus]

TRANSITION_TABLE: dict[Role, frozenset[Transition]] = {
    Role.REGULAR_USER: frozenset(
        {
            (VehicleStatus.AVAILABLE, VehicleStatus.RENTED),
            (VehicleStatus.RENTED, VehicleStatus.AVAILABLE),
        }
    ),
    Role.TECHNICIAN: frozenset(permutations(ASSIGNABLE_STATUSES, 2)),
}


def is_allowed(
    role: Optional[Role], from_status: VehicleStatus, to_status: VehicleStatus
) -> bool:
    if to_status == VehicleStatus.UNKNOWN:
        return False
    if from_status == to_status:
        return True
    if role is None:
        return False
    return (from_status, to_status) in TRANSITION_TABLE.get(role, frozenset())


def validate(
    role: Optional[Role], expected: VehicleStatus, requested: VehicleStatus
) -> Result[None]:
    """Like ``is_allowed`` but explains a refusal."""
    if requested == VehicleStatus.UNKNOWN:
        return Result.fail(
            ErrorCode.INVALID_TRANSITION,
            "Cannot transition vehicle status to Unknown.",
        )
    if expected == requested:
        return Result.ok()
    if role not in TRANSITION_TABLE:
        return Result.fail(
            ErrorCode.FORBIDDEN,
            "Caller does not have a role permitted to modify vehicle status.",
        )
    if not is_allowed(role, expected, requested):
        return Result.fail(
            ErrorCode.FORBIDDEN,
            f"Role {role.value} cannot transition vehicle status "
            f"from {expected.value} to {requested.value}.",
        )
    return Result.ok()


def allowed_targets(
    role: Optional[Role], current: VehicleStatus
) -> list[VehicleStatus]:
    """Statuses ``role`` may move a vehicle to from ``current`` (excluding itself)."""
    return [
        target
        for target in ASSIGNABLE_STATUSES
        if target != current and is_allowed(role, current, target)
    ]
