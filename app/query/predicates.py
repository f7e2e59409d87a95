"""Typed predicate fragments.

Every filter the access policy or the list orchestrator produces is one
of the small, closed set of predicate types below.  A query's WHERE
clause is a tuple of predicates ANDed together; OR only appears inside
AnyOf (used by the multi-column search and id-set lookups).

The same fragments are evaluated in Python by the in-memory store and
compiled to SQL by app/db/query_compiler.py, so both backends agree on
semantics.
"""

from __future__ import annotations

import datetime
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Literal

SortDirection = Literal["asc", "desc"]


@dataclass(frozen=True, slots=True)
class Eq:
    field: str
    value: Any


@dataclass(frozen=True, slots=True)
class Contains:
    """Case-insensitive substring match."""

    field: str
    term: str


@dataclass(frozen=True, slots=True)
class Range:
    """Inclusive range; a None bound is unconstrained."""

    field: str
    gte: datetime.datetime | int | None = None
    lte: datetime.datetime | int | None = None


@dataclass(frozen=True, slots=True)
class NotDeleted:
    pass


@dataclass(frozen=True, slots=True)
class AnyOf:
    options: tuple[Predicate, ...]


Predicate = Eq | Contains | Range | NotDeleted | AnyOf


@dataclass(frozen=True, slots=True)
class SortKey:
    field: str
    direction: SortDirection = "asc"


def matches(predicate: Predicate, record: Any) -> bool:
    """Evaluate one predicate against a record object."""
    match predicate:
        case Eq(field=field, value=value):
            return getattr(record, field) == value
        case Contains(field=field, term=term):
            value = getattr(record, field)
            return value is not None and term.casefold() in str(value).casefold()
        case Range(field=field, gte=gte, lte=lte):
            value = getattr(record, field)
            if value is None:
                return False
            if gte is not None and value < gte:
                return False
            if lte is not None and value > lte:
                return False
            return True
        case NotDeleted():
            return not record.is_deleted
        case AnyOf(options=options):
            return any(matches(p, record) for p in options)
    raise TypeError(f"unsupported predicate: {predicate!r}")


def matches_all(where: Iterable[Predicate], record: Any) -> bool:
    return all(matches(p, record) for p in where)
