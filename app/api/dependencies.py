from __future__ import annotations

import ipaddress
import logging
from collections.abc import AsyncIterator, Iterable, Sequence
from functools import partial
from typing import Annotated

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import SETTINGS, IPNetwork
from app.core.logging import bind_principal
from app.core.metrics import ACCESS_DENIALS
from app.db.engine import session_scope
from app.models.principal import Principal, Role
from app.repos.pg_record_store import PgRecordStore
from app.services import token_service
from app.services.errors import ForbiddenError, UnauthenticatedError
from app.services.identity import resolve_principal
from app.services.registry import Services, build_services

logger = logging.getLogger(__name__)

# auto_error=False: a missing header is answered by require_principal with
# the same 401 envelope as a bad token.
bearer_scheme = HTTPBearer(auto_error=False)


async def require_principal(
    request: Request,
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> Principal:
    """Verify the bearer token and resolve it to a Principal.

    Used as a FastAPI dependency on every protected endpoint.  Async so
    the principal it binds to the logging context is visible to the
    endpoint that runs after it.
    """
    if credentials is None:
        raise UnauthenticatedError("Authentication required")

    try:
        claims = token_service.decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise UnauthenticatedError("Token expired", error_code="TOKEN_EXPIRED") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise UnauthenticatedError("Invalid token", error_code="INVALID_TOKEN") from None

    principal = resolve_principal(claims)
    bind_principal(principal.user_id, principal.tenant_id)
    request.state.principal = principal
    logger.debug(
        "Token validated for user=%s role=%s tenant=%s",
        principal.user_id,
        principal.role,
        principal.tenant_id,
    )
    return principal


def require_roles(roles: Iterable[Role]):
    """Dependency factory: demand at least one of the given roles.

    Usage: Depends(require_roles({Role.SUPER_ADMIN, Role.TENANT_ADMIN}))
    """
    allowed = frozenset(roles)

    def _guard(
        principal: Annotated[Principal, Depends(require_principal)],
    ) -> Principal:
        if not principal.has_any_role(allowed):
            logger.warning(
                "Access denied: user=%s role=%s not in %s",
                principal.user_id,
                principal.role,
                sorted(allowed),
            )
            ACCESS_DENIALS.labels(reason="role").inc()
            raise ForbiddenError(
                "Insufficient permissions", error_code="INSUFFICIENT_ROLE"
            )
        return principal

    return _guard


def _is_trusted(host: str, trusted: Sequence[IPNetwork]) -> bool:
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    return any(address in network for network in trusted)


def client_ip(
    request: Request, trusted: Sequence[IPNetwork] | None = None
) -> str | None:
    """Caller address for audit stamps.

    X-Forwarded-For is only read when the direct peer is one of the
    TRUSTED_PROXIES; the caller is then the rightmost hop that is not
    itself a trusted proxy.  Anyone else gets their socket address
    recorded, whatever headers they send.
    """
    if trusted is None:
        trusted = SETTINGS.trusted_proxies
    peer = request.client.host if request.client else None
    if peer is None or not _is_trusted(peer, trusted):
        return peer

    hops = [
        hop.strip()
        for hop in request.headers.get("x-forwarded-for", "").split(",")
        if hop.strip()
    ]
    for hop in reversed(hops):
        if not _is_trusted(hop, trusted):
            return hop
    return hops[0] if hops else peer


async def get_services(request: Request) -> AsyncIterator[Services]:
    """Provide the record services for one request.

    With a database configured, every service runs over PgRecordStore
    bound to one request-scoped session (committed on success, rolled
    back on error).  Without one, the app's in-memory backend serves.
    Tests swap either out through app.dependency_overrides.
    """
    session_factory = request.app.state.session_factory
    if session_factory is None:
        yield request.app.state.memory.services
        return
    async with session_scope(session_factory) as session:
        yield build_services(partial(PgRecordStore, session))
