"""Tests for the request context middleware.

Every response carries an X-Request-ID header (generated or echoed),
and each request logs one completion line with the principal attached
once a token has been resolved.
"""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from tests.conftest import auth, mint_token

_LOGGER = "app.middleware.request_context"


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    uuid.UUID(resp.headers["x-request-id"])  # raises ValueError if invalid


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "my-request-123"})
    assert resp.headers.get("x-request-id") == "my-request-123"


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    resp = client.get("/v1/clients")  # no token -> 401
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None


def test_completion_line_carries_principal(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    token = mint_token(user_id=42, tenant_id=7)
    with caplog.at_level(logging.INFO, logger=_LOGGER):
        client.get("/v1/programs", headers={**auth(token), "X-Request-ID": "req-abc"})

    (record,) = [r for r in caplog.records if r.name == _LOGGER]
    assert record.getMessage().startswith("GET /v1/programs -> 200")
    assert record.request_id == "req-abc"
    assert (record.user_id, record.tenant_id) == (42, 7)
    assert record.status_code == 200


def test_completion_line_without_principal(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger=_LOGGER):
        client.get("/health")

    (record,) = [r for r in caplog.records if r.name == _LOGGER]
    assert record.path == "/health"
    assert getattr(record, "user_id", "-") == "-"
