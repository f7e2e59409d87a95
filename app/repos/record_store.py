from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from typing import Any, Generic, Protocol, TypeVar

from app.models.record import Record
from app.query.predicates import Predicate, SortKey, matches_all

R = TypeVar("R", bound=Record)


class RecordStore(Protocol[R]):
    def get(self, record_id: int) -> R | None: ...
    def add(self, record: R) -> R: ...
    def replace(self, record: R) -> R: ...
    def count(self, where: Sequence[Predicate]) -> int: ...
    def fetch(
        self,
        where: Sequence[Predicate],
        order_by: Sequence[SortKey],
        offset: int,
        limit: int,
    ) -> list[R]: ...


class AsyncRecordStore(Protocol[R]):
    async def get(self, record_id: int) -> R | None: ...
    async def add(self, record: R) -> R: ...
    async def replace(self, record: R) -> R: ...
    async def count(self, where: Sequence[Predicate]) -> int: ...
    async def fetch(
        self,
        where: Sequence[Predicate],
        order_by: Sequence[SortKey],
        offset: int,
        limit: int,
    ) -> list[R]: ...


class AsyncStoreAdapter(Generic[R]):
    """Serves a synchronous store through the AsyncRecordStore protocol.

    Lets the async services run over InMemoryRecordStore without a
    second implementation of the store.
    """

    def __init__(self, store: RecordStore[R]) -> None:
        self._store = store

    async def get(self, record_id: int) -> R | None:
        return self._store.get(record_id)

    async def add(self, record: R) -> R:
        return self._store.add(record)

    async def replace(self, record: R) -> R:
        return self._store.replace(record)

    async def count(self, where: Sequence[Predicate]) -> int:
        return self._store.count(where)

    async def fetch(
        self,
        where: Sequence[Predicate],
        order_by: Sequence[SortKey],
        offset: int,
        limit: int,
    ) -> list[R]:
        return self._store.fetch(where, order_by, offset, limit)


def _sort_value(value: Any, descending: bool) -> tuple[bool, Any]:
    # None sorts last in both directions.
    if value is None:
        return (not descending, 0)
    return (descending, value)


class InMemoryRecordStore:
    """Process-local store for dev and tests.  Ids start at 1."""

    def __init__(self) -> None:
        self._by_id: dict[int, Any] = {}
        self._next_id = 1

    def get(self, record_id: int) -> Any | None:
        return self._by_id.get(record_id)

    def add(self, record: Any) -> Any:
        stored = replace(record, id=self._next_id)
        self._next_id += 1
        self._by_id[stored.id] = stored
        return stored

    def replace(self, record: Any) -> Any:
        if record.id not in self._by_id:
            raise KeyError(f"record {record.id} not found")
        self._by_id[record.id] = record
        return record

    def count(self, where: Sequence[Predicate]) -> int:
        return sum(1 for r in self._by_id.values() if matches_all(where, r))

    def fetch(
        self,
        where: Sequence[Predicate],
        order_by: Sequence[SortKey],
        offset: int,
        limit: int,
    ) -> list[Any]:
        rows = [r for r in self._by_id.values() if matches_all(where, r)]
        # Stable sorts applied from the least significant key outwards.
        for key in reversed(order_by):
            descending = key.direction == "desc"
            rows.sort(
                key=lambda r, f=key.field, d=descending: _sort_value(getattr(r, f), d),
                reverse=descending,
            )
        return rows[offset : offset + limit]

    def clear(self) -> None:
        self._by_id.clear()
        self._next_id = 1
