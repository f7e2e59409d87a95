"""Identity/claims resolver: verified token payload -> Principal.

Signature and expiry checks happen before this point (token_service);
this module trusts the payload and only interprets it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from app.core.metrics import ACCESS_DENIALS
from app.models.principal import Principal, Role
from app.services.errors import ForbiddenError, UnauthenticatedError

logger = logging.getLogger(__name__)

# Tokens minted for global principals carry tenant_id 0 or no tenant at all.
GLOBAL_TENANT_SENTINEL = 0


def _parse_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isascii():
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def resolve_principal(claims: Mapping[str, Any] | None) -> Principal:
    """Map verified JWT claims (sub, role, tenant_id) to a Principal.

    Raises UnauthenticatedError when no principal can be derived and
    ForbiddenError when the role claim is absent or unrecognized.
    """
    if not claims:
        logger.warning("No claims supplied to identity resolver")
        raise UnauthenticatedError("Authentication required")

    user_id = _parse_int(claims.get("sub"))
    if user_id is None:
        logger.warning("Token subject is missing or not numeric: %r", claims.get("sub"))
        raise UnauthenticatedError("Invalid token subject")

    raw_role = claims.get("role")
    try:
        role = Role(raw_role)
    except ValueError:
        logger.warning("Access denied: user=%s unrecognized role=%r", user_id, raw_role)
        ACCESS_DENIALS.labels(reason="role").inc()
        raise ForbiddenError("Unrecognized role", error_code="INSUFFICIENT_ROLE") from None

    if role is Role.SUPER_ADMIN:
        return Principal(role=role, user_id=user_id, tenant_id=None)

    tenant_id = _parse_int(claims.get("tenant_id"))
    if tenant_id is None or tenant_id <= GLOBAL_TENANT_SENTINEL:
        logger.warning(
            "Token for user=%s role=%s is not bound to a tenant", user_id, role
        )
        raise UnauthenticatedError("Token is not bound to a tenant")

    return Principal(role=role, user_id=user_id, tenant_id=tenant_id)
