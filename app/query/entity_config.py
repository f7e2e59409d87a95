"""Static per-entity query declarations.

An EntityConfig is configuration data, not behavior: it names the
primary key and tenant column, the default sort, the sort allow-list,
which text columns the search box covers, and the closed set of typed
filter fields.  The list orchestrator only ever turns *declared* fields
into predicates, so a query string can never inject an arbitrary
column filter.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType

from app.models.entities import (
    Client,
    ClientStatus,
    ClientTenant,
    Course,
    CourseStatus,
    Program,
    Specialization,
    SpecializationProgram,
    Student,
    StudentStatus,
    Teacher,
    Tenant,
    TenantStatus,
)
from app.models.principal import Principal, Role
from app.query.predicates import Eq, Predicate, SortDirection

OwnershipRule = Callable[[Principal], tuple[Predicate, ...]]

_COMMON_SORT_FIELDS = frozenset({"id", "created_at", "updated_at", "is_active"})
_TENANT_KEYS = frozenset({"tenant_id", "tenantId"})


@dataclass(frozen=True, slots=True)
class FilterFields:
    string_fields: frozenset[str] = frozenset()
    number_fields: frozenset[str] = frozenset()
    boolean_fields: frozenset[str] = frozenset()
    enum_fields: Mapping[str, type[StrEnum]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def names(self) -> frozenset[str]:
        return (
            self.string_fields
            | self.number_fields
            | self.boolean_fields
            | frozenset(self.enum_fields)
        )


@dataclass(frozen=True, slots=True)
class EntityConfig:
    name: str
    record_type: type
    sort_fields: frozenset[str]
    primary_key: str = "id"
    tenant_field: str = "tenant_id"
    default_sort_field: str = "created_at"
    default_sort_direction: SortDirection = "desc"
    search_fields: tuple[str, ...] = ()
    filter_fields: FilterFields = FilterFields()
    date_fields: frozenset[str] = frozenset({"created_at"})
    unique_fields: tuple[str, ...] = ()
    unique_together: tuple[tuple[str, ...], ...] = ()
    ownership: OwnershipRule | None = None

    def __post_init__(self) -> None:
        if self.default_sort_field not in self.sort_fields:
            raise ValueError(
                f"{self.name}: default sort field {self.default_sort_field!r} "
                "is not in the sort allow-list"
            )
        leaked = self.filter_fields.names() & (_TENANT_KEYS | {self.tenant_field})
        if leaked:
            raise ValueError(
                f"{self.name}: tenant column cannot be a client filter ({sorted(leaked)})"
            )

    def ownership_predicates(self, principal: Principal) -> tuple[Predicate, ...]:
        if self.ownership is None:
            return ()
        return self.ownership(principal)


def _self_only(role: Role) -> OwnershipRule:
    """Principals with `role` may only see the record whose id is their user id."""

    def _rule(principal: Principal) -> tuple[Predicate, ...]:
        if principal.role is role:
            return (Eq("id", principal.user_id),)
        return ()

    return _rule


TENANTS = EntityConfig(
    name="tenant",
    record_type=Tenant,
    tenant_field="id",
    sort_fields=_COMMON_SORT_FIELDS | {"tenant_name", "tenant_status"},
    search_fields=("tenant_name",),
    filter_fields=FilterFields(
        boolean_fields=frozenset({"is_active"}),
        enum_fields=MappingProxyType({"tenant_status": TenantStatus}),
    ),
    unique_fields=("tenant_name",),
)

CLIENTS = EntityConfig(
    name="client",
    record_type=Client,
    sort_fields=_COMMON_SORT_FIELDS | {"full_name", "email_address", "client_status"},
    search_fields=("full_name", "email_address"),
    filter_fields=FilterFields(
        boolean_fields=frozenset({"is_active"}),
        enum_fields=MappingProxyType({"client_status": ClientStatus}),
    ),
    unique_fields=("email_address",),
)

PROGRAMS = EntityConfig(
    name="program",
    record_type=Program,
    sort_fields=_COMMON_SORT_FIELDS | {"program_name"},
    search_fields=("program_name",),
    filter_fields=FilterFields(boolean_fields=frozenset({"is_active"})),
    unique_fields=("program_name",),
)

COURSES = EntityConfig(
    name="course",
    record_type=Course,
    sort_fields=_COMMON_SORT_FIELDS
    | {"course_name", "course_code", "course_status", "course_total_hours"},
    search_fields=("course_name", "course_code", "course_description"),
    filter_fields=FilterFields(
        string_fields=frozenset({"course_code"}),
        number_fields=frozenset({"program_id"}),
        boolean_fields=frozenset({"is_active"}),
        enum_fields=MappingProxyType({"course_status": CourseStatus}),
    ),
    unique_fields=("course_name",),
)

STUDENTS = EntityConfig(
    name="student",
    record_type=Student,
    sort_fields=_COMMON_SORT_FIELDS
    | {"full_name", "first_name", "last_name", "username", "student_status"},
    search_fields=("full_name", "email_address", "username"),
    filter_fields=FilterFields(
        string_fields=frozenset({"username"}),
        boolean_fields=frozenset({"is_active"}),
        enum_fields=MappingProxyType({"student_status": StudentStatus}),
    ),
    unique_fields=("username",),
    ownership=_self_only(Role.STUDENT),
)

TEACHERS = EntityConfig(
    name="teacher",
    record_type=Teacher,
    sort_fields=_COMMON_SORT_FIELDS | {"full_name", "first_name", "last_name", "username"},
    search_fields=("full_name", "email_address", "username"),
    filter_fields=FilterFields(
        string_fields=frozenset({"username"}),
        boolean_fields=frozenset({"is_active"}),
    ),
    unique_fields=("username",),
    ownership=_self_only(Role.TEACHER),
)

CLIENT_TENANTS = EntityConfig(
    name="client_tenant",
    record_type=ClientTenant,
    sort_fields=_COMMON_SORT_FIELDS | {"client_id"},
    filter_fields=FilterFields(
        number_fields=frozenset({"client_id"}),
        boolean_fields=frozenset({"is_active"}),
    ),
    unique_together=(("client_id",),),
)

SPECIALIZATIONS = EntityConfig(
    name="specialization",
    record_type=Specialization,
    sort_fields=_COMMON_SORT_FIELDS | {"specialization_name", "specialization_code"},
    search_fields=(
        "specialization_name",
        "specialization_code",
        "specialization_description",
    ),
    filter_fields=FilterFields(
        string_fields=frozenset({"specialization_code"}),
        boolean_fields=frozenset({"is_active"}),
    ),
)

SPECIALIZATION_PROGRAMS = EntityConfig(
    name="specialization_program",
    record_type=SpecializationProgram,
    sort_fields=_COMMON_SORT_FIELDS | {"specialization_id", "program_id"},
    filter_fields=FilterFields(
        number_fields=frozenset({"specialization_id", "program_id"}),
        boolean_fields=frozenset({"is_active"}),
    ),
    unique_together=(("specialization_id", "program_id"),),
)
