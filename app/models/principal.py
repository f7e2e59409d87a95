from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Role(StrEnum):
    SUPER_ADMIN = "SUPER_ADMIN"
    TENANT_ADMIN = "TENANT_ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


ALL_ROLES: frozenset[Role] = frozenset(Role)
ADMIN_ROLES: frozenset[Role] = frozenset({Role.SUPER_ADMIN, Role.TENANT_ADMIN})


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated JWT.

    Carried through the request via FastAPI's dependency system.
    Services receive this instead of raw token claims.

        role: one of Role
        user_id: subject from JWT (numeric id of the system user,
                 teacher or student)
        tenant_id: tenant the principal is bound to; None for the
                   global SUPER_ADMIN
    """

    role: Role
    user_id: int
    tenant_id: int | None = None

    def __post_init__(self) -> None:
        if self.role is not Role.SUPER_ADMIN and self.tenant_id is None:
            raise ValueError(f"{self.role} principal must be bound to a tenant")

    def is_super_admin(self) -> bool:
        return self.role is Role.SUPER_ADMIN

    def has_any_role(self, roles: set[Role] | frozenset[Role]) -> bool:
        return self.role in roles
