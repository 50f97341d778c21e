"""
Role-derived permission predicates.

All four are pure functions of the role; no role (no session) grants
nothing.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional, Union

from .models import Role

RoleLike = Optional[Union[Role, str]]

WRITE_ROLES = frozenset({Role.ADMIN, Role.MANAGER})
USER_ADMIN_ROLES = frozenset({Role.ADMIN})


def _normalise(role: RoleLike) -> Optional[Role]:
    if role is None:
        return None
    if isinstance(role, Role):
        return role
    try:
        return Role(role)
    except ValueError:
        return None


def can_add(role: RoleLike) -> bool:
    return _normalise(role) in WRITE_ROLES


def can_edit(role: RoleLike) -> bool:
    return _normalise(role) in WRITE_ROLES


def can_delete(role: RoleLike) -> bool:
    return _normalise(role) in WRITE_ROLES


def can_manage_users(role: RoleLike) -> bool:
    return _normalise(role) in USER_ADMIN_ROLES


@dataclass(frozen=True)
class Permissions:
    can_add: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_manage_users: bool = False

    @classmethod
    def for_role(cls, role: RoleLike) -> "Permissions":
        return cls(
            can_add=can_add(role),
            can_edit=can_edit(role),
            can_delete=can_delete(role),
            can_manage_users=can_manage_users(role),
        )

    def as_dict(self) -> dict:
        return asdict(self)


NO_PERMISSIONS = Permissions()
