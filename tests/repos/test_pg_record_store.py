"""PgRecordStore against SQLite (aiosqlite).

Each test builds a fresh file-backed database, creates the schema from
the table metadata, and runs its body through asyncio.run().
"""

from __future__ import annotations

import asyncio
import dataclasses
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.engine import Base, make_engine, make_session_factory
from app.models.entities import Client, ClientStatus, Tenant
from app.models.principal import Principal, Role
from app.models.record import ACTIVE, Deleted
from app.query.entity_config import CLIENTS
from app.repos.pg_record_store import PgRecordStore
from app.services.access_policy import build_access_filter
from app.services.list_query import ListQuery, run_list_query_async
from tests.conftest import T0

ADMIN_1 = Principal(role=Role.TENANT_ADMIN, user_id=10, tenant_id=1)


def _run(db_path: Path, body: Callable[[AsyncSession], Awaitable[Any]]) -> Any:
    async def _main() -> Any:
        engine = make_engine(f"sqlite+aiosqlite:///{db_path}")
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            async with make_session_factory(engine)() as session:
                return await body(session)
        finally:
            await engine.dispose()

    return asyncio.run(_main())


async def _seed_tenants(session: AsyncSession) -> None:
    tenants = PgRecordStore(session, Tenant)
    for name in ("Acme", "Globex"):
        await tenants.add(Tenant(tenant_name=name, created_at=T0, created_by=1))


def _client(tenant_id: int, name: str, email: str, **kwargs) -> Client:
    return Client(
        tenant_id=tenant_id,
        full_name=name,
        email_address=email,
        created_at=T0,
        created_by=1,
        **kwargs,
    )


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "lms.db"


def test_add_and_get_round_trip(db_path: Path) -> None:
    async def body(session: AsyncSession) -> tuple[Client, Client | None]:
        await _seed_tenants(session)
        store = PgRecordStore(session, Client)
        created = await store.add(
            _client(1, "Ada", "ada@example.com", client_status=ClientStatus.SUSPENDED)
        )
        return created, await store.get(created.id)

    created, loaded = _run(db_path, body)
    assert created.id == 1
    assert loaded == created
    assert loaded.lifecycle is ACTIVE
    assert loaded.client_status is ClientStatus.SUSPENDED
    assert loaded.created_at == T0


def test_get_missing_returns_none(db_path: Path) -> None:
    async def body(session: AsyncSession) -> Client | None:
        return await PgRecordStore(session, Client).get(404)

    assert _run(db_path, body) is None


def test_soft_delete_round_trips_lifecycle(db_path: Path) -> None:
    async def body(session: AsyncSession) -> Client | None:
        await _seed_tenants(session)
        store = PgRecordStore(session, Client)
        created = await store.add(_client(1, "Ada", "ada@example.com"))
        await store.replace(
            dataclasses.replace(
                created, lifecycle=Deleted(at=T0, by=7), is_active=False
            )
        )
        return await store.get(created.id)

    loaded = _run(db_path, body)
    assert loaded.lifecycle == Deleted(at=T0, by=7)
    assert loaded.is_deleted
    assert loaded.is_active is False


def test_replace_missing_row_raises(db_path: Path) -> None:
    async def body(session: AsyncSession) -> None:
        await _seed_tenants(session)
        store = PgRecordStore(session, Client)
        await store.replace(dataclasses.replace(_client(1, "Ghost", "g@example.com"), id=55))

    with pytest.raises(KeyError):
        _run(db_path, body)


def test_list_query_is_tenant_scoped_and_paged(db_path: Path) -> None:
    async def body(session: AsyncSession) -> tuple[Any, Any]:
        await _seed_tenants(session)
        store = PgRecordStore(session, Client)
        for i in range(12):
            await store.add(_client(1, f"Client {i:02d}", f"c{i}@acme.example"))
        await store.add(_client(2, "Intruder", "x@globex.example"))

        access = build_access_filter(ADMIN_1, config=CLIENTS, tenant_override=2)
        first = await run_list_query_async(access, ListQuery(limit=5), CLIENTS, store)
        last = await run_list_query_async(access, ListQuery(page=3, limit=5), CLIENTS, store)
        return first, last

    first, last = _run(db_path, body)
    assert first.pagination.total == 12
    assert first.pagination.total_pages == 3
    assert [c.id for c in first.items] == [1, 2, 3, 4, 5]
    assert [c.id for c in last.items] == [11, 12]
    assert not last.pagination.has_next
    assert all(c.tenant_id == 1 for c in first.items + last.items)


def test_search_treats_like_wildcards_literally(db_path: Path) -> None:
    async def body(session: AsyncSession) -> list[str]:
        await _seed_tenants(session)
        store = PgRecordStore(session, Client)
        await store.add(_client(1, "100% Organic", "organic@example.com"))
        await store.add(_client(1, "1000 Oaks", "oaks@example.com"))

        access = build_access_filter(ADMIN_1, config=CLIENTS)
        result = await run_list_query_async(
            access, ListQuery(search="100%"), CLIENTS, store
        )
        return [c.full_name for c in result.items]

    assert _run(db_path, body) == ["100% Organic"]


def test_deleted_rows_excluded_from_listing(db_path: Path) -> None:
    async def body(session: AsyncSession) -> Any:
        await _seed_tenants(session)
        store = PgRecordStore(session, Client)
        await store.add(_client(1, "Live", "live@example.com"))
        gone = await store.add(_client(1, "Gone", "gone@example.com"))
        await store.replace(dataclasses.replace(gone, lifecycle=Deleted(at=T0, by=1)))

        access = build_access_filter(ADMIN_1, config=CLIENTS)
        return await run_list_query_async(access, ListQuery(), CLIENTS, store)

    result = _run(db_path, body)
    assert result.pagination.total == 1
    assert [c.full_name for c in result.items] == ["Live"]
