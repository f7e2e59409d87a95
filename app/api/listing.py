"""List endpoint query-parameter validation.

list_query_params(config) builds the FastAPI dependency that turns a
request's query string into a ListQuery for one entity.  Everything the
orchestrator asserts on is checked here first:

  page              >= 1
  limit             1..100
  sort              "field" or "field:asc|desc", field from the allow-list
  <date>_from/_to   ISO date or datetime; from <= to

Failures answer 422.  Typed filters are collected from the query string
by their declared names only; any other key never leaves this module.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Annotated

from fastapi import Query, Request

from app.query.entity_config import EntityConfig
from app.query.predicates import SortDirection
from app.services.errors import InvalidInputError
from app.services.list_query import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    MAX_LIMIT,
    SORT_DIRECTIONS,
    DateRange,
    ListQuery,
    parse_date_bound,
)

MAX_SEARCH_LENGTH = 200


def parse_sort(
    raw: str | None, config: EntityConfig
) -> tuple[str | None, SortDirection | None]:
    """Parse "field" or "field:direction"; None means the entity default."""
    if raw is None or not raw.strip():
        return None, None
    field, _, direction = raw.strip().partition(":")
    field = field.strip()
    direction = direction.strip().lower()
    if field not in config.sort_fields:
        raise InvalidInputError(
            f"Cannot sort {config.name} by {field!r}", error_code="INVALID_SORT_FIELD"
        )
    if not direction:
        return field, None
    if direction not in SORT_DIRECTIONS:
        raise InvalidInputError(
            f"Sort direction must be asc or desc (got {direction!r})",
            error_code="INVALID_SORT_DIRECTION",
        )
    return field, direction  # type: ignore[return-value]


def parse_date_ranges(request: Request, config: EntityConfig) -> tuple[DateRange, ...]:
    ranges = []
    for field in sorted(config.date_fields):
        raw_from = request.query_params.get(f"{field}_from")
        raw_to = request.query_params.get(f"{field}_to")
        start = parse_date_bound(raw_from) if raw_from else None
        end = parse_date_bound(raw_to, end=True) if raw_to else None
        if start is not None and end is not None and start > end:
            raise InvalidInputError(
                f"{field}_from must not be after {field}_to",
                error_code="INVALID_DATE_RANGE",
            )
        if start is not None or end is not None:
            ranges.append(DateRange(field, start, end))
    return tuple(ranges)


def list_query_params(config: EntityConfig):
    """Dependency factory: validated ListQuery for `config`'s list endpoint."""
    declared = config.filter_fields.names()

    def _parse(
        request: Request,
        page: Annotated[int, Query(ge=1)] = DEFAULT_PAGE,
        limit: Annotated[int, Query(ge=1, le=MAX_LIMIT)] = DEFAULT_LIMIT,
        sort: Annotated[str | None, Query(max_length=64)] = None,
        search: Annotated[str | None, Query(max_length=MAX_SEARCH_LENGTH)] = None,
        tenant_id: Annotated[int | None, Query(ge=1)] = None,
        include_deleted: bool = False,
    ) -> ListQuery:
        sort_field, sort_direction = parse_sort(sort, config)
        filters = {
            key: value
            for key, value in request.query_params.items()
            if key in declared
        }
        return ListQuery(
            page=page,
            limit=limit,
            sort_field=sort_field,
            sort_direction=sort_direction,
            search=search,
            filters=MappingProxyType(filters),
            date_ranges=parse_date_ranges(request, config),
            tenant_id=tenant_id,
            include_deleted=include_deleted,
        )

    return _parse
