"""Caller identity as handed over by the (external) authentication layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from fleet_service.domain.enums import Role

_ROLE_BY_NAME = {role.value.lower(): role for role in Role}


@dataclass(frozen=True)
class CallerIdentity:
    user_id: str
    roles: frozenset[Role] = frozenset()

    @classmethod
    def from_claims(cls, user_id: str, role_names: Iterable[str]) -> CallerIdentity:
        """Build from raw role claims; names are matched case-insensitively,
        unknown names are ignored."""
        roles = {
            _ROLE_BY_NAME[name.strip().lower()]
            for name in role_names
            if name and name.strip().lower() in _ROLE_BY_NAME
        }
        return cls(user_id=user_id.strip(), roles=frozenset(roles))

    @property
    def effective_role(self) -> Optional[Role]:
        """Most capable role held; technicians include regular-user rights."""
        if Role.TECHNICIAN in self.roles:
            return Role.TECHNICIAN
        if Role.REGULAR_USER in self.roles:
            return Role.REGULAR_USER
        return None
