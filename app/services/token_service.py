"""JWT access token creation and validation (ES256).

dependencies.py verifies bearer tokens here and hands the payload to the
identity resolver.  Issuance exists for tests and local tooling only;
this service has no login flow.

Claims: sub (user id), role, tenant_id, plus iss, aud, exp, iat, jti.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives.asymmetric import ec

# ---------------------------------------------------------------------------
# Key management
# ---------------------------------------------------------------------------
# Dev/test: generate an ephemeral EC key pair on import.
# Production: load from env var, file, or KMS (not implemented yet).
_private_key = ec.generate_private_key(ec.SECP256R1())
_public_key = _private_key.public_key()

ALGORITHM = "ES256"
ISSUER = "lms-service"
AUDIENCE = "lms-api"
ACCESS_TOKEN_TTL_MIN = 15


def create_access_token(
    *,
    sub: int | str,
    role: str,
    tenant_id: int | None = None,
    ttl: timedelta | None = None,
) -> str:
    """Build and sign a JWT access token.

    `sub` is written as a string (RFC 7519); the identity resolver parses
    it back to an int.  A super admin token usually carries no tenant_id.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": str(sub),
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + (ttl or timedelta(minutes=ACCESS_TOKEN_TTL_MIN)),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "role": role,
    }
    if tenant_id is not None:
        payload["tenant_id"] = tenant_id
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins algorithm to ES256 to prevent alg:none and alg-switching attacks.
    Validates exp, iss, and aud automatically via PyJWT options.

    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )
