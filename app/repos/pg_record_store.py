"""SQLAlchemy implementation of the record store protocol (AsyncRecordStore)."""

from __future__ import annotations

import dataclasses
import datetime
from collections.abc import Sequence
from typing import Any, Generic

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.query_compiler import compile_order_by, compile_where
from app.db.tables import (
    ClientRow,
    ClientTenantRow,
    CourseRow,
    ProgramRow,
    SpecializationProgramRow,
    SpecializationRow,
    StudentRow,
    TeacherRow,
    TenantRow,
)
from app.models.entities import (
    Client,
    ClientTenant,
    Course,
    Program,
    Specialization,
    SpecializationProgram,
    Student,
    Teacher,
    Tenant,
)
from app.models.record import ACTIVE, Deleted
from app.query.predicates import Predicate, SortKey
from app.repos.record_store import R

ROW_TYPES: dict[type, type] = {
    Tenant: TenantRow,
    Client: ClientRow,
    Program: ProgramRow,
    Course: CourseRow,
    Student: StudentRow,
    Teacher: TeacherRow,
    ClientTenant: ClientTenantRow,
    Specialization: SpecializationRow,
    SpecializationProgram: SpecializationProgramRow,
}


def _as_utc(value: Any) -> Any:
    # SQLite hands back naive datetimes; everything stored is UTC.
    if isinstance(value, datetime.datetime) and value.tzinfo is None:
        return value.replace(tzinfo=datetime.UTC)
    return value


def record_to_values(record: Any) -> dict[str, Any]:
    values = {
        f.name: getattr(record, f.name)
        for f in dataclasses.fields(record)
        if f.name != "lifecycle"
    }
    lifecycle = record.lifecycle
    if isinstance(lifecycle, Deleted):
        values.update(is_deleted=True, deleted_at=lifecycle.at, deleted_by=lifecycle.by)
    else:
        values.update(is_deleted=False, deleted_at=None, deleted_by=None)
    return values


def row_to_record(row: Any, record_type: type) -> Any:
    values = {
        f.name: _as_utc(getattr(row, f.name))
        for f in dataclasses.fields(record_type)
        if f.name != "lifecycle"
    }
    if row.is_deleted:
        lifecycle = Deleted(at=_as_utc(row.deleted_at), by=row.deleted_by)
    else:
        lifecycle = ACTIVE
    return record_type(lifecycle=lifecycle, **values)


class PgRecordStore(Generic[R]):
    """Satisfies AsyncRecordStore for one entity using SQLAlchemy."""

    def __init__(self, session: AsyncSession, record_type: type[R]) -> None:
        self._session = session
        self._record_type = record_type
        self._row = ROW_TYPES[record_type]

    async def get(self, record_id: int) -> R | None:
        stmt = (
            select(self._row)
            .where(self._row.id == record_id)
            .execution_options(populate_existing=True)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return row_to_record(row, self._record_type)

    async def add(self, record: R) -> R:
        values = record_to_values(record)
        values.pop("id")  # assigned by the database
        row = self._row(**values)
        self._session.add(row)
        await self._session.flush()
        return dataclasses.replace(record, id=row.id)

    async def replace(self, record: R) -> R:
        values = record_to_values(record)
        record_id = values.pop("id")
        stmt = update(self._row).where(self._row.id == record_id).values(**values)
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise KeyError(f"record {record_id} not found")
        return record

    async def count(self, where: Sequence[Predicate]) -> int:
        stmt = (
            select(func.count())
            .select_from(self._row)
            .where(*compile_where(self._row, where))
        )
        return (await self._session.execute(stmt)).scalar_one()

    async def fetch(
        self,
        where: Sequence[Predicate],
        order_by: Sequence[SortKey],
        offset: int,
        limit: int,
    ) -> list[R]:
        stmt = (
            select(self._row)
            .where(*compile_where(self._row, where))
            .order_by(*compile_order_by(self._row, order_by))
            .offset(offset)
            .limit(limit)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [row_to_record(row, self._record_type) for row in rows]
