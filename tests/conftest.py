from __future__ import annotations

import asyncio
import datetime
import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Health checks and store wiring assume no database; set before app import.
os.environ.pop("DATABASE_URL", None)

from app.main import app  # noqa: E402
from app.models.entities import Program, Tenant  # noqa: E402
from app.models.principal import Principal, Role  # noqa: E402
from app.services import token_service  # noqa: E402
from app.services.registry import Services  # noqa: E402

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

SUPER = Principal(role=Role.SUPER_ADMIN, user_id=1)

T0 = datetime.datetime(2025, 1, 1, 9, 0, tzinfo=datetime.UTC)


class TickClock:
    """Deterministic clock: each call is one second after the previous."""

    def __init__(self, start: datetime.datetime = T0) -> None:
        self._now = start

    def __call__(self) -> datetime.datetime:
        now = self._now
        self._now += datetime.timedelta(seconds=1)
        return now


def admin_of(tenant_id: int, user_id: int = 100) -> Principal:
    return Principal(role=Role.TENANT_ADMIN, user_id=user_id, tenant_id=tenant_id)


run = asyncio.run


def memory() -> Services:
    """The services behind the routers when no database is configured."""
    return app.state.memory.services


@pytest.fixture(autouse=True)
def reset_record_stores() -> None:
    """Clear the in-memory stores behind the routers between tests."""
    app.state.memory.reset()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    user_id: int = 100,
    role: Role | str = Role.TENANT_ADMIN,
    tenant_id: int | None = 1,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(
        sub=user_id, role=str(role), tenant_id=tenant_id
    )


@pytest.fixture
def super_token() -> str:
    return mint_token(user_id=1, role=Role.SUPER_ADMIN, tenant_id=None)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Seed helpers (write straight through the in-memory services)
# ---------------------------------------------------------------------------


def seed_tenant(name: str) -> Tenant:
    return run(memory().tenants.create_tenant(SUPER, {"tenant_name": name}))


def seed_program(tenant_id: int, name: str = "Data Science") -> Program:
    return run(
        memory().programs.create(SUPER, {"program_name": name}, tenant_id=tenant_id)
    )
