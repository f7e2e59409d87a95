"""Tenant access policy: who may see which rows.

Every read and write path in the service layer goes through
build_access_filter().  It is the only place that branches on the
principal's role to decide tenant scope, so no service repeats the
"if super admin then X else Y" dance.

LIST ACCESS
-------------
  SUPER_ADMIN    all tenants, or the one named by an explicit override
  anyone else    own tenant, always; a client-supplied override is ignored

SINGLE-RECORD ACCESS
----------------------
The caller loads the target first, then asks the policy about it.  A
target in another tenant is a FORBIDDEN condition internally, but the
caller only ever sees NOT_FOUND: answering 403 would confirm the id
exists in some other tenant.  The real reason is logged and counted
(access_denials_total) so the probe is still visible to operators.

Soft-deleted records are excluded everywhere unless a super admin asks
for an include_deleted administrative query.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal, cast

from app.core.metrics import ACCESS_DENIALS
from app.models.principal import Principal, Role
from app.models.record import Deleted
from app.query.entity_config import EntityConfig
from app.query.predicates import Eq, NotDeleted, Predicate, matches_all
from app.services.errors import ForbiddenError, InvalidInputError, NotFoundError

logger = logging.getLogger(__name__)


class TenantScope(Enum):
    UNRESTRICTED = "unrestricted"


UNRESTRICTED = TenantScope.UNRESTRICTED


@dataclass(frozen=True, slots=True)
class AccessFilter:
    """Mandatory predicate set for one request.  Never persisted."""

    tenant_id: int | Literal[TenantScope.UNRESTRICTED]
    exclude_deleted: bool = True
    extra: tuple[Predicate, ...] = ()
    tenant_field: str = "tenant_id"

    @property
    def is_unrestricted(self) -> bool:
        return self.tenant_id is UNRESTRICTED

    def predicates(self) -> tuple[Predicate, ...]:
        where: list[Predicate] = []
        if not self.is_unrestricted:
            where.append(Eq(self.tenant_field, self.tenant_id))
        if self.exclude_deleted:
            where.append(NotDeleted())
        where.extend(self.extra)
        return tuple(where)


def _not_found(config: EntityConfig | None) -> NotFoundError:
    name = config.name if config is not None else "record"
    label = name.replace("_", " ")
    return NotFoundError(
        f"{label.capitalize()} not found", error_code=f"{name.upper()}_NOT_FOUND"
    )


def build_access_filter(
    principal: Principal,
    target: Any | None = None,
    *,
    config: EntityConfig | None = None,
    tenant_override: int | None = None,
    include_deleted: bool = False,
) -> AccessFilter:
    """Build the AccessFilter for `principal`, optionally checked against `target`.

    With a target (get/update/delete), raises NotFoundError when the
    target is outside the principal's reach.  include_deleted is a
    super-admin-only flag; anyone else gets ForbiddenError.
    """
    if include_deleted and not principal.is_super_admin():
        logger.warning(
            "Access denied: user=%s role=%s requested deleted records",
            principal.user_id,
            principal.role,
        )
        ACCESS_DENIALS.labels(reason="include_deleted").inc()
        raise ForbiddenError(
            "Only super admins may query deleted records",
            error_code="INSUFFICIENT_ROLE",
        )

    tenant_id: int | Literal[TenantScope.UNRESTRICTED]
    match principal.role:
        case Role.SUPER_ADMIN:
            if target is None and tenant_override is not None:
                tenant_id = tenant_override
            else:
                tenant_id = UNRESTRICTED
        case Role.TENANT_ADMIN | Role.TEACHER | Role.STUDENT:
            if tenant_override is not None and tenant_override != principal.tenant_id:
                logger.debug(
                    "Ignoring tenant override=%s for user=%s bound to tenant=%s",
                    tenant_override,
                    principal.user_id,
                    principal.tenant_id,
                )
            # Principal guarantees a tenant for every non-super role.
            tenant_id = cast(int, principal.tenant_id)

    access = AccessFilter(
        tenant_id=tenant_id,
        exclude_deleted=not include_deleted,
        extra=config.ownership_predicates(principal) if config is not None else (),
        tenant_field=config.tenant_field if config is not None else "tenant_id",
    )

    if target is not None:
        _check_target(access, principal, target, config)
    return access


def _check_target(
    access: AccessFilter,
    principal: Principal,
    target: Any,
    config: EntityConfig | None,
) -> None:
    if not access.is_unrestricted:
        target_tenant = getattr(target, access.tenant_field)
        if target_tenant != access.tenant_id:
            logger.warning(
                "Access denied: user=%s tenant=%s cross-tenant access to %s id=%s "
                "of tenant=%s",
                principal.user_id,
                principal.tenant_id,
                config.name if config is not None else "record",
                target.id,
                target_tenant,
            )
            ACCESS_DENIALS.labels(reason="cross_tenant").inc()
            raise _not_found(config)

    if access.exclude_deleted and target.is_deleted:
        raise _not_found(config)

    if access.extra and not matches_all(access.extra, target):
        logger.warning(
            "Access denied: user=%s role=%s outside own-record scope for %s id=%s",
            principal.user_id,
            principal.role,
            config.name if config is not None else "record",
            target.id,
        )
        ACCESS_DENIALS.labels(reason="ownership").inc()
        raise _not_found(config)


def resolve_create_tenant(principal: Principal, requested_tenant_id: int | None) -> int:
    """Decide which tenant a new record belongs to.

    A super admin must name the tenant; other principals create in their
    own tenant and may not name a different one.
    """
    if principal.is_super_admin():
        if requested_tenant_id is None:
            raise InvalidInputError(
                "tenant_id is required", error_code="TENANT_ID_REQUIRED"
            )
        return requested_tenant_id

    own_tenant = cast(int, principal.tenant_id)
    if requested_tenant_id is not None and requested_tenant_id != own_tenant:
        logger.warning(
            "Access denied: user=%s tenant=%s tried to create in tenant=%s",
            principal.user_id,
            principal.tenant_id,
            requested_tenant_id,
        )
        ACCESS_DENIALS.labels(reason="create_tenant").inc()
        raise ForbiddenError(
            "Cannot create a record for another tenant",
            error_code="CROSS_TENANT_ACCESS_DENIED",
        )
    return own_tenant


# ---------------------------------------------------------------------------
# Audit stamps
# ---------------------------------------------------------------------------


def audit_on_create(
    principal: Principal, ip: str | None, now: datetime.datetime
) -> dict[str, Any]:
    return {
        "created_at": now,
        "created_by": principal.user_id,
        "created_ip": ip,
        "is_active": True,
    }


def audit_on_update(
    principal: Principal, ip: str | None, now: datetime.datetime
) -> dict[str, Any]:
    return {"updated_at": now, "updated_by": principal.user_id, "updated_ip": ip}


def audit_on_delete(
    principal: Principal, ip: str | None, now: datetime.datetime
) -> dict[str, Any]:
    return {
        "lifecycle": Deleted(at=now, by=principal.user_id),
        "is_active": False,
        **audit_on_update(principal, ip, now),
    }
