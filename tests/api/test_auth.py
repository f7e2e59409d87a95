"""Bearer token handling on protected routes."""

from __future__ import annotations

import datetime

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from fastapi.testclient import TestClient

from app.models.principal import Role
from app.services import token_service
from tests.conftest import auth, mint_token


def _assert_401(resp, error_code: str) -> None:
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"
    assert resp.json()["error_code"] == error_code


def test_missing_token(client: TestClient) -> None:
    _assert_401(client.get("/v1/programs"), "UNAUTHENTICATED")


def test_non_bearer_scheme(client: TestClient) -> None:
    resp = client.get("/v1/programs", headers={"Authorization": "Basic dXNlcjpwYXNz"})
    _assert_401(resp, "UNAUTHENTICATED")


def test_garbage_token(client: TestClient) -> None:
    _assert_401(client.get("/v1/programs", headers=auth("not.a.jwt")), "INVALID_TOKEN")


def test_expired_token(client: TestClient) -> None:
    token = token_service.create_access_token(
        sub=1, role="TENANT_ADMIN", tenant_id=1, ttl=datetime.timedelta(seconds=-30)
    )
    _assert_401(client.get("/v1/programs", headers=auth(token)), "TOKEN_EXPIRED")


def test_token_signed_by_another_key(client: TestClient) -> None:
    now = datetime.datetime.now(datetime.UTC)
    forged = jwt.encode(
        {
            "sub": "1",
            "role": "SUPER_ADMIN",
            "iss": token_service.ISSUER,
            "aud": token_service.AUDIENCE,
            "iat": now,
            "exp": now + datetime.timedelta(minutes=5),
            "jti": "forged",
        },
        ec.generate_private_key(ec.SECP256R1()),
        algorithm="ES256",
    )
    _assert_401(client.get("/v1/programs", headers=auth(forged)), "INVALID_TOKEN")


def test_unknown_role_is_forbidden(client: TestClient) -> None:
    resp = client.get("/v1/programs", headers=auth(mint_token(role="JANITOR")))
    assert resp.status_code == 403
    assert resp.json()["error_code"] == "INSUFFICIENT_ROLE"


@pytest.mark.parametrize("tenant_id", [None, 0])
def test_tenant_bound_role_without_tenant(client: TestClient, tenant_id: int | None) -> None:
    token = mint_token(role=Role.TEACHER, tenant_id=tenant_id)
    _assert_401(client.get("/v1/programs", headers=auth(token)), "UNAUTHENTICATED")


def test_super_admin_tenant_claim_is_ignored(client: TestClient) -> None:
    token = mint_token(user_id=1, role=Role.SUPER_ADMIN, tenant_id=4)
    resp = client.get("/v1/tenants", headers=auth(token))
    assert resp.status_code == 200


def test_valid_token(client: TestClient) -> None:
    resp = client.get("/v1/programs", headers=auth(mint_token()))
    assert resp.status_code == 200
