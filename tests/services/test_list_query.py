from __future__ import annotations

import datetime
import math

import pytest

from app.models.entities import Client, ClientStatus, Course, CourseStatus
from app.models.principal import Principal, Role
from app.models.record import Deleted
from app.query.entity_config import CLIENTS, COURSES
from app.query.predicates import AnyOf, Contains, Eq, NotDeleted, Range, SortKey
from app.repos.record_store import InMemoryRecordStore
from app.services.access_policy import build_access_filter
from app.services.errors import InvalidInputError, ListContractError
from app.services.list_query import (
    DateRange,
    ListQuery,
    build_pagination,
    build_typed_filters,
    parse_date_bound,
    plan_list_query,
    run_list_query,
)
from tests.conftest import SUPER, T0

ADMIN_5 = Principal(role=Role.TENANT_ADMIN, user_id=50, tenant_id=5)


def _client(tenant_id: int, name: str, *, minutes: int = 0, **kwargs) -> Client:
    return Client(
        tenant_id=tenant_id,
        full_name=name,
        email_address=f"{name.lower().replace(' ', '.')}@example.com",
        created_at=T0 + datetime.timedelta(minutes=minutes),
        created_by=1,
        **kwargs,
    )


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


# ---- pagination ----


def test_pagination_example_page_two_of_three() -> None:
    pagination = build_pagination(page=2, limit=10, total=25)
    assert (pagination.total_pages, pagination.has_next, pagination.has_prev) == (3, True, True)


@pytest.mark.parametrize("total", [0, 1, 9, 10, 11, 99, 100, 101])
@pytest.mark.parametrize("limit", [1, 7, 10, 100])
def test_pagination_invariants(total: int, limit: int) -> None:
    total_pages = math.ceil(total / limit)
    for page in range(1, total_pages + 2):
        pagination = build_pagination(page, limit, total)
        assert pagination.total_pages == total_pages
        assert pagination.has_next == (page < total_pages)
        assert pagination.has_prev == (page > 1)


def test_pagination_rejects_zero_limit() -> None:
    with pytest.raises(ListContractError):
        build_pagination(page=1, limit=0, total=3)


# ---- contract ----


@pytest.mark.parametrize(
    "query",
    [
        ListQuery(page=0),
        ListQuery(limit=0),
        ListQuery(limit=101),
        ListQuery(sort_field="email_address; DROP TABLE clients"),
        ListQuery(sort_field="tenant_id"),
        ListQuery(sort_direction="sideways"),  # type: ignore[arg-type]
        ListQuery(date_ranges=(DateRange("deleted_at", start=T0),)),
    ],
    ids=["page-0", "limit-0", "limit-101", "injected-sort", "unlisted-sort", "bad-direction", "undeclared-date"],
)
def test_contract_violations_fail_fast(query: ListQuery) -> None:
    access = build_access_filter(ADMIN_5, config=CLIENTS)
    with pytest.raises(ListContractError):
        plan_list_query(access, query, CLIENTS)


# ---- composition ----


def test_plan_composes_access_search_filters_and_dates_in_order() -> None:
    access = build_access_filter(ADMIN_5, config=COURSES)
    end = datetime.datetime(2025, 2, 1, tzinfo=datetime.UTC)
    query = ListQuery(
        search="  python ",
        filters={"course_status": "PUBLISHED", "program_id": "3"},
        date_ranges=(DateRange("created_at", start=T0, end=end),),
    )
    plan = plan_list_query(access, query, COURSES)
    assert plan.where == (
        Eq("tenant_id", 5),
        NotDeleted(),
        AnyOf(
            (
                Contains("course_name", "python"),
                Contains("course_code", "python"),
                Contains("course_description", "python"),
            )
        ),
        Eq("course_status", CourseStatus.PUBLISHED),
        Eq("program_id", 3),
        Range("created_at", gte=T0, lte=end),
    )


def test_plan_defaults_to_created_at_desc_with_id_tie_break() -> None:
    access = build_access_filter(ADMIN_5, config=CLIENTS)
    plan = plan_list_query(access, ListQuery(page=3, limit=10), CLIENTS)
    assert plan.order_by == (SortKey("created_at", "desc"), SortKey("id", "asc"))
    assert plan.offset == 20


def test_sorting_by_primary_key_has_no_extra_tie_break() -> None:
    access = build_access_filter(ADMIN_5, config=CLIENTS)
    plan = plan_list_query(access, ListQuery(sort_field="id", sort_direction="desc"), CLIENTS)
    assert plan.order_by == (SortKey("id", "desc"),)


@pytest.mark.parametrize("search", ["", "   ", None], ids=["empty", "blank", "none"])
def test_blank_search_adds_no_predicate(search) -> None:
    access = build_access_filter(ADMIN_5, config=CLIENTS)
    plan = plan_list_query(access, ListQuery(search=search), CLIENTS)
    assert plan.where == access.predicates()


def test_typed_filters_coerce_declared_fields() -> None:
    predicates = build_typed_filters(
        {
            "course_code": " CS101 ",
            "program_id": "12",
            "is_active": "TRUE",
            "course_status": "ARCHIVED",
        },
        COURSES.filter_fields,
    )
    assert set(predicates) == {
        Eq("course_code", "CS101"),
        Eq("program_id", 12),
        Eq("is_active", True),
        Eq("course_status", CourseStatus.ARCHIVED),
    }


def test_typed_filters_drop_unparseable_and_unknown_values() -> None:
    predicates = build_typed_filters(
        {
            "program_id": "twelve",
            "course_status": "DELETED",
            "course_code": "   ",
            "tenant_id": "99",
            "created_by": "1",
        },
        COURSES.filter_fields,
    )
    assert predicates == ()


@pytest.mark.parametrize(("raw", "expected"), [("true", True), ("1", True), ("false", False), ("yes", False)])
def test_boolean_filter_values(raw: str, expected: bool) -> None:
    assert build_typed_filters({"is_active": raw}, CLIENTS.filter_fields) == (
        Eq("is_active", expected),
    )


# ---- execution against a store ----


def test_tenant_filter_cannot_be_overridden_through_filters(store: InMemoryRecordStore) -> None:
    store.add(_client(5, "Mine"))
    store.add(_client(99, "Theirs"))
    access = build_access_filter(ADMIN_5, config=CLIENTS, tenant_override=99)
    result = run_list_query(
        access, ListQuery(filters={"tenant_id": "99", "tenantId": "99"}), CLIENTS, store
    )
    assert [c.full_name for c in result.items] == ["Mine"]


def test_soft_deleted_rows_are_excluded(store: InMemoryRecordStore) -> None:
    store.add(_client(5, "Live"))
    store.add(_client(5, "Gone", lifecycle=Deleted(at=T0, by=1), is_active=False))
    access = build_access_filter(ADMIN_5, config=CLIENTS)
    result = run_list_query(access, ListQuery(), CLIENTS, store)
    assert [c.full_name for c in result.items] == ["Live"]
    assert result.pagination.total == 1


def test_super_admin_lists_every_tenant(store: InMemoryRecordStore) -> None:
    for tenant_id in (1, 2, 3):
        store.add(_client(tenant_id, f"Client {tenant_id}"))
    result = run_list_query(build_access_filter(SUPER, config=CLIENTS), ListQuery(), CLIENTS, store)
    assert result.pagination.total == 3


def test_search_is_case_insensitive_across_fields(store: InMemoryRecordStore) -> None:
    store.add(_client(5, "Grace Hopper"))
    store.add(_client(5, "Alan Turing"))
    store.add(_client(5, "Hopper Fan Club"))
    access = build_access_filter(ADMIN_5, config=CLIENTS)
    result = run_list_query(
        access, ListQuery(search="HOPPER", sort_field="full_name", sort_direction="asc"), CLIENTS, store
    )
    assert [c.full_name for c in result.items] == ["Grace Hopper", "Hopper Fan Club"]


def test_enum_filter(store: InMemoryRecordStore) -> None:
    store.add(_client(5, "Active One"))
    store.add(_client(5, "Suspended One", client_status=ClientStatus.SUSPENDED))
    access = build_access_filter(ADMIN_5, config=CLIENTS)
    result = run_list_query(access, ListQuery(filters={"client_status": "SUSPENDED"}), CLIENTS, store)
    assert [c.full_name for c in result.items] == ["Suspended One"]


def test_date_range_is_inclusive_through_end_of_day(store: InMemoryRecordStore) -> None:
    store.add(_client(5, "Early", minutes=0))
    store.add(_client(5, "Late", minutes=14 * 60))  # 23:00 on the same day
    store.add(_client(5, "Next Day", minutes=15 * 60 + 1))
    access = build_access_filter(ADMIN_5, config=CLIENTS)
    query = ListQuery(
        date_ranges=(
            DateRange(
                "created_at",
                start=parse_date_bound("2025-01-01"),
                end=parse_date_bound("2025-01-01", end=True),
            ),
        ),
        sort_field="created_at",
        sort_direction="asc",
    )
    result = run_list_query(access, query, CLIENTS, store)
    assert [c.full_name for c in result.items] == ["Early", "Late"]


def test_ties_break_on_id_and_pages_are_stable(store: InMemoryRecordStore) -> None:
    # Every row shares created_at, so order relies entirely on the id tie-break.
    for i in range(25):
        store.add(_client(5, f"Client {i:02d}"))
    access = build_access_filter(ADMIN_5, config=CLIENTS)

    pages = [
        run_list_query(access, ListQuery(page=page, limit=10), CLIENTS, store)
        for page in (1, 2, 3)
    ]
    ids = [c.id for result in pages for c in result.items]
    assert ids == list(range(1, 26))
    assert [len(r.items) for r in pages] == [10, 10, 5]
    assert pages[1].pagination.total_pages == 3

    again = run_list_query(access, ListQuery(page=2, limit=10), CLIENTS, store)
    assert [c.id for c in again.items] == [c.id for c in pages[1].items]


def test_page_past_the_end_is_empty(store: InMemoryRecordStore) -> None:
    store.add(_client(5, "Only"))
    access = build_access_filter(ADMIN_5, config=CLIENTS)
    result = run_list_query(access, ListQuery(page=4, limit=10), CLIENTS, store)
    assert result.items == []
    assert result.pagination.total == 1
    assert not result.pagination.has_next


def test_list_query_counter_increments(store: InMemoryRecordStore) -> None:
    from prometheus_client import REGISTRY

    before = REGISTRY.get_sample_value("list_queries_total", {"entity": "course"}) or 0.0
    access = build_access_filter(ADMIN_5, config=COURSES)
    run_list_query(access, ListQuery(), COURSES, InMemoryRecordStore())
    after = REGISTRY.get_sample_value("list_queries_total", {"entity": "course"})
    assert after - before == 1


def test_list_courses_by_program(store: InMemoryRecordStore) -> None:
    for program_id, code in ((1, "A1"), (2, "B1"), (1, "A2")):
        store.add(
            Course(
                tenant_id=5,
                course_name=code,
                course_code=code,
                program_id=program_id,
                created_at=T0,
                created_by=1,
            )
        )
    access = build_access_filter(ADMIN_5, config=COURSES)
    result = run_list_query(access, ListQuery(filters={"program_id": "1"}), COURSES, store)
    assert sorted(c.course_code for c in result.items) == ["A1", "A2"]


# ---- date bounds ----


def test_date_only_upper_bound_covers_whole_day() -> None:
    bound = parse_date_bound("2025-03-09", end=True)
    assert bound == datetime.datetime(2025, 3, 9, 23, 59, 59, 999999, tzinfo=datetime.UTC)


def test_datetime_bound_kept_verbatim() -> None:
    bound = parse_date_bound("2025-03-09T10:30:00+02:00", end=True)
    assert bound.hour == 10
    assert bound.utcoffset() == datetime.timedelta(hours=2)


def test_invalid_date_bound() -> None:
    with pytest.raises(InvalidInputError):
        parse_date_bound("09/03/2025")
