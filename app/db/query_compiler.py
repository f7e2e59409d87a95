"""Compile typed predicates and sort keys into SQLAlchemy expressions.

The in-memory store evaluates the same predicates with
app.query.predicates.matches(); the two must agree:

  Eq         column = value
  Contains   column ILIKE '%term%' (LIKE wildcards in the term escaped)
  Range      column >= gte AND column <= lte
  NotDeleted is_deleted IS false
  AnyOf      OR of the compiled options

NULLs sort last in both directions, matching the in-memory store.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import and_, false, or_, true
from sqlalchemy.sql.elements import ColumnElement

from app.query.predicates import (
    AnyOf,
    Contains,
    Eq,
    NotDeleted,
    Predicate,
    Range,
    SortKey,
)
from app.services.errors import ListContractError

LIKE_ESCAPE = "\\"


def escape_like(term: str) -> str:
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def _column(row_cls: type, field: str) -> ColumnElement[Any]:
    try:
        return row_cls.__table__.c[field]  # type: ignore[attr-defined]
    except KeyError:
        raise ListContractError(
            f"{row_cls.__name__} has no column {field!r}"
        ) from None


def compile_predicate(row_cls: type, predicate: Predicate) -> ColumnElement[bool]:
    match predicate:
        case Eq(field=field, value=value):
            column = _column(row_cls, field)
            return column.is_(None) if value is None else column == value
        case Contains(field=field, term=term):
            return _column(row_cls, field).ilike(
                f"%{escape_like(term)}%", escape=LIKE_ESCAPE
            )
        case Range(field=field, gte=gte, lte=lte):
            column = _column(row_cls, field)
            bounds = []
            if gte is not None:
                bounds.append(column >= gte)
            if lte is not None:
                bounds.append(column <= lte)
            return and_(true(), *bounds)
        case NotDeleted():
            return _column(row_cls, "is_deleted").is_(false())
        case AnyOf(options=options):
            return or_(false(), *(compile_predicate(row_cls, p) for p in options))
    raise TypeError(f"unsupported predicate: {predicate!r}")


def compile_where(
    row_cls: type, where: Sequence[Predicate]
) -> list[ColumnElement[bool]]:
    return [compile_predicate(row_cls, p) for p in where]


def compile_order_by(
    row_cls: type, order_by: Sequence[SortKey]
) -> list[ColumnElement[Any]]:
    clauses = []
    for key in order_by:
        column = _column(row_cls, key.field)
        ordered = column.desc() if key.direction == "desc" else column.asc()
        clauses.append(ordered.nulls_last())
    return clauses
