"""Unit tests for the role-gated status transition policy."""

from itertools import product

import pytest

from fleet_service.domain import policy
from fleet_service.domain.enums import Role, VehicleStatus
from fleet_service.domain.results import ErrorCode

ALL = list(VehicleStatus)
RENTAL_MOVES = {
    (VehicleStatus.AVAILABLE, VehicleStatus.RENTED),
    (VehicleStatus.RENTED, VehicleStatus.AVAILABLE),
}


class TestIsAllowed:
    def test_regular_user_only_rents_and_returns(self):
        for src, dst in product(ALL, ALL):
            expected = dst != VehicleStatus.UNKNOWN and (
                src == dst or (src, dst) in RENTAL_MOVES
            )
            assert policy.is_allowed(Role.REGULAR_USER, src, dst) is expected, (src, dst)

    def test_technician_may_reach_any_real_status(self):
        for src, dst in product(ALL, ALL):
            expected = dst != VehicleStatus.UNKNOWN and (
                src == dst or src != VehicleStatus.UNKNOWN
            )
            assert policy.is_allowed(Role.TECHNICIAN, src, dst) is expected, (src, dst)

    def test_same_status_is_allowed_for_everyone(self):
        assert policy.is_allowed(None, VehicleStatus.MAINTENANCE, VehicleStatus.MAINTENANCE)

    def test_no_role_cannot_change_anything(self):
        assert not policy.is_allowed(None, VehicleStatus.AVAILABLE, VehicleStatus.RENTED)


class TestValidate:
    def test_regular_user_setting_maintenance_is_forbidden(self):
        result = policy.validate(
            Role.REGULAR_USER, VehicleStatus.AVAILABLE, VehicleStatus.MAINTENANCE
        )
        assert result.error.code == ErrorCode.FORBIDDEN

    def test_unknown_target_is_invalid_transition(self):
        result = policy.validate(
            Role.TECHNICIAN, VehicleStatus.AVAILABLE, VehicleStatus.UNKNOWN
        )
        assert result.error.code == ErrorCode.INVALID_TRANSITION

    @pytest.mark.parametrize("role", [None, Role.REGULAR_USER, Role.TECHNICIAN])
    def test_same_status_validates_for_any_caller(self, role):
        result = policy.validate(
            role, VehicleStatus.MAINTENANCE, VehicleStatus.MAINTENANCE
        )
        assert result.is_success

    def test_missing_role_is_forbidden(self):
        result = policy.validate(None, VehicleStatus.AVAILABLE, VehicleStatus.RENTED)
        assert result.error.code == ErrorCode.FORBIDDEN

    @pytest.mark.parametrize(
        "role,src,dst",
        [
            (Role.REGULAR_USER, VehicleStatus.AVAILABLE, VehicleStatus.RENTED),
            (Role.TECHNICIAN, VehicleStatus.RENTED, VehicleStatus.OUT_OF_SERVICE),
            (Role.TECHNICIAN, VehicleStatus.MAINTENANCE, VehicleStatus.AVAILABLE),
        ],
    )
    def test_allowed_moves_validate(self, role, src, dst):
        assert policy.validate(role, src, dst).is_success


class TestAllowedTargets:
    def test_regular_user_from_available(self):
        assert policy.allowed_targets(Role.REGULAR_USER, VehicleStatus.AVAILABLE) == [
            VehicleStatus.RENTED
        ]

    def test_regular_user_from_maintenance(self):
        assert policy.allowed_targets(Role.REGULAR_USER, VehicleStatus.MAINTENANCE) == []

    def test_technician_from_rented(self):
        assert policy.allowed_targets(Role.TECHNICIAN, VehicleStatus.RENTED) == [
            VehicleStatus.AVAILABLE,
            VehicleStatus.MAINTENANCE,
            VehicleStatus.OUT_OF_SERVICE,
        ]
