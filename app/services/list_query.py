"""List/query orchestrator.

Turns an AccessFilter plus a ListQuery into a concrete paged, sorted,
filtered result.  The predicate set is composed in a fixed order:

    AccessFilter  AND  search  AND  typed filters  AND  date ranges

and the *same* tuple feeds both the count query and the page query, so
`total` and `items` are always computed against identical predicates.

Page/limit/sort values are validated upstream (app/api/listing.py).  If
an out-of-range value still reaches this module, that is a bug in the
validation layer: we raise ListContractError instead of clamping, so it
shows up as a loud 500 rather than a silently different page.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Generic, TypeVar

from app.core.metrics import LIST_QUERIES
from app.query.entity_config import EntityConfig, FilterFields
from app.query.predicates import (
    AnyOf,
    Contains,
    Eq,
    Predicate,
    Range,
    SortDirection,
    SortKey,
)
from app.repos.record_store import AsyncRecordStore, RecordStore
from app.services.access_policy import AccessFilter
from app.services.errors import InvalidInputError, ListContractError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100
SORT_DIRECTIONS: frozenset[str] = frozenset({"asc", "desc"})


@dataclass(frozen=True, slots=True)
class DateRange:
    """Inclusive bounds on a timestamp column; a None bound is open."""

    field: str
    start: datetime.datetime | None = None
    end: datetime.datetime | None = None


@dataclass(frozen=True, slots=True)
class ListQuery:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort_field: str | None = None  # None: entity default
    sort_direction: SortDirection | None = None
    search: str | None = None
    filters: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    date_ranges: tuple[DateRange, ...] = ()
    tenant_id: int | None = None  # honoured for super admins only
    include_deleted: bool = False


@dataclass(frozen=True, slots=True)
class Pagination:
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


@dataclass(frozen=True, slots=True)
class ListResult(Generic[T]):
    items: list[T]
    pagination: Pagination


@dataclass(frozen=True, slots=True)
class ListPlan:
    where: tuple[Predicate, ...]
    order_by: tuple[SortKey, ...]
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


# ---------------------------------------------------------------------------
# Predicate builders
# ---------------------------------------------------------------------------


def build_search_filter(
    search: str | None, search_fields: Sequence[str]
) -> Predicate | None:
    """Case-insensitive substring match OR'd across the entity's text columns."""
    if search is None or not search_fields:
        return None
    term = search.strip()
    if not term:
        return None
    return AnyOf(tuple(Contains(f, term) for f in search_fields))


def build_typed_filters(
    raw: Mapping[str, Any], fields: FilterFields
) -> tuple[Predicate, ...]:
    """Map declared filter keys to predicates.  Undeclared keys are dropped."""
    predicates: list[Predicate] = []
    for key in sorted(raw):
        value = str(raw[key]).strip()
        if key in fields.string_fields:
            if value:
                predicates.append(Eq(key, value))
        elif key in fields.number_fields:
            try:
                predicates.append(Eq(key, int(value)))
            except ValueError:
                logger.debug("Ignoring non-numeric filter %s=%r", key, value)
        elif key in fields.boolean_fields:
            predicates.append(Eq(key, value.lower() in ("true", "1")))
        elif key in fields.enum_fields:
            try:
                predicates.append(Eq(key, fields.enum_fields[key](value)))
            except ValueError:
                logger.debug("Ignoring unknown enum value %s=%r", key, value)
        else:
            logger.debug("Ignoring undeclared filter key %r", key)
    return tuple(predicates)


def build_date_filters(date_ranges: Sequence[DateRange]) -> tuple[Predicate, ...]:
    return tuple(
        Range(r.field, gte=r.start, lte=r.end)
        for r in date_ranges
        if r.start is not None or r.end is not None
    )


def build_ordering(
    config: EntityConfig, sort_field: str, direction: SortDirection
) -> tuple[SortKey, ...]:
    """Requested sort, then primary key ascending so page boundaries are stable."""
    order = [SortKey(sort_field, direction)]
    if sort_field != config.primary_key:
        order.append(SortKey(config.primary_key, "asc"))
    return tuple(order)


def parse_date_bound(value: str, *, end: bool = False) -> datetime.datetime:
    """Parse an ISO date or datetime used as a date-range bound.

    A date-only upper bound covers the whole day.  Naive values are UTC.
    """
    text = value.strip()
    try:
        if len(text) == 10:
            day = datetime.date.fromisoformat(text)
            bound = datetime.datetime.combine(
                day, datetime.time.max if end else datetime.time.min
            )
        else:
            bound = datetime.datetime.fromisoformat(text)
    except ValueError:
        raise InvalidInputError(
            f"invalid date {value!r}", error_code="INVALID_DATE"
        ) from None
    if bound.tzinfo is None:
        bound = bound.replace(tzinfo=datetime.UTC)
    return bound


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    if limit < 1 or page < 1 or total < 0:
        raise ListContractError(
            f"invalid pagination inputs page={page} limit={limit} total={total}"
        )
    total_pages = -(-total // limit)
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


def _check_contract(query: ListQuery, config: EntityConfig) -> None:
    if query.page < 1:
        raise ListContractError(f"page must be >= 1 (got {query.page})")
    if not 1 <= query.limit <= MAX_LIMIT:
        raise ListContractError(f"limit must be in [1, {MAX_LIMIT}] (got {query.limit})")
    if query.sort_field is not None and query.sort_field not in config.sort_fields:
        raise ListContractError(
            f"{config.name}: sort field {query.sort_field!r} is not allowed"
        )
    if query.sort_direction is not None and query.sort_direction not in SORT_DIRECTIONS:
        raise ListContractError(f"invalid sort direction {query.sort_direction!r}")
    for date_range in query.date_ranges:
        if date_range.field not in config.date_fields:
            raise ListContractError(
                f"{config.name}: {date_range.field!r} is not a date-range field"
            )


def plan_list_query(
    access: AccessFilter, query: ListQuery, config: EntityConfig
) -> ListPlan:
    """Compose the full predicate set and ordering for one list request."""
    _check_contract(query, config)

    where: list[Predicate] = list(access.predicates())
    search = build_search_filter(query.search, config.search_fields)
    if search is not None:
        where.append(search)
    where.extend(build_typed_filters(query.filters, config.filter_fields))
    where.extend(build_date_filters(query.date_ranges))

    order_by = build_ordering(
        config,
        query.sort_field or config.default_sort_field,
        query.sort_direction or config.default_sort_direction,
    )
    return ListPlan(
        where=tuple(where), order_by=order_by, page=query.page, limit=query.limit
    )


def _finish(plan: ListPlan, config: EntityConfig, items: list[T], total: int) -> ListResult[T]:
    if len(items) > plan.limit:
        raise ListContractError(
            f"{config.name}: store returned {len(items)} rows for limit {plan.limit}"
        )
    LIST_QUERIES.labels(entity=config.name).inc()
    logger.debug(
        "Listed %s page=%d limit=%d returned=%d total=%d",
        config.name,
        plan.page,
        plan.limit,
        len(items),
        total,
    )
    return ListResult(items=items, pagination=build_pagination(plan.page, plan.limit, total))


def run_list_query(
    access: AccessFilter,
    query: ListQuery,
    config: EntityConfig,
    store: RecordStore[T],
) -> ListResult[T]:
    # count and page queries are not transactionally linked; total may lag
    # concurrent writes.
    plan = plan_list_query(access, query, config)
    total = store.count(plan.where)
    items = store.fetch(plan.where, plan.order_by, plan.offset, plan.limit)
    return _finish(plan, config, items, total)


async def run_list_query_async(
    access: AccessFilter,
    query: ListQuery,
    config: EntityConfig,
    store: AsyncRecordStore[T],
) -> ListResult[T]:
    plan = plan_list_query(access, query, config)
    total = await store.count(plan.where)
    items = await store.fetch(plan.where, plan.order_by, plan.offset, plan.limit)
    return _finish(plan, config, items, total)
