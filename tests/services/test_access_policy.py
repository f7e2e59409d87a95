"""Tenant access policy tests.

The builder is pure, so these run without a store: records are built
directly and handed to build_access_filter as targets.
"""

from __future__ import annotations

import pytest
from prometheus_client import REGISTRY

from app.models.entities import Program, Student, Tenant
from app.models.principal import Principal, Role
from app.models.record import Deleted
from app.query.entity_config import CLIENTS, PROGRAMS, STUDENTS, TENANTS
from app.query.predicates import Eq, NotDeleted
from app.services.access_policy import (
    UNRESTRICTED,
    AccessFilter,
    audit_on_create,
    audit_on_delete,
    audit_on_update,
    build_access_filter,
    resolve_create_tenant,
)
from app.services.errors import ForbiddenError, InvalidInputError, NotFoundError
from tests.conftest import SUPER, T0


def _denials(reason: str) -> float:
    value = REGISTRY.get_sample_value("access_denials_total", {"reason": reason})
    return value if value is not None else 0.0


def _program(record_id: int, tenant_id: int, **kwargs) -> Program:
    return Program(
        id=record_id,
        tenant_id=tenant_id,
        program_name=f"program-{record_id}",
        created_at=T0,
        created_by=1,
        **kwargs,
    )


def _student(record_id: int, tenant_id: int) -> Student:
    return Student(
        id=record_id,
        tenant_id=tenant_id,
        full_name="Ada Lovelace",
        first_name="Ada",
        last_name="Lovelace",
        email_address="ada@example.com",
        username=f"ada{record_id}",
        created_at=T0,
        created_by=1,
    )


# ---- list access ----


def test_tenant_admin_override_is_ignored() -> None:
    principal = Principal(role=Role.TENANT_ADMIN, user_id=10, tenant_id=5)
    access = build_access_filter(principal, config=CLIENTS, tenant_override=99)
    assert access.tenant_id == 5
    assert Eq("tenant_id", 5) in access.predicates()
    assert Eq("tenant_id", 99) not in access.predicates()


@pytest.mark.parametrize("role", [Role.TENANT_ADMIN, Role.TEACHER, Role.STUDENT])
def test_non_super_roles_are_pinned_to_own_tenant(role: Role) -> None:
    principal = Principal(role=role, user_id=10, tenant_id=3)
    access = build_access_filter(principal, config=PROGRAMS, tenant_override=4)
    assert access.tenant_id == 3


def test_super_admin_without_override_is_unrestricted() -> None:
    access = build_access_filter(SUPER, config=CLIENTS)
    assert access.is_unrestricted
    assert access.tenant_id is UNRESTRICTED
    assert access.predicates() == (NotDeleted(),)


def test_super_admin_override_pins_list_to_tenant() -> None:
    access = build_access_filter(SUPER, config=CLIENTS, tenant_override=7)
    assert access.tenant_id == 7
    assert access.predicates() == (Eq("tenant_id", 7), NotDeleted())


def test_tenant_filter_uses_entity_tenant_field() -> None:
    principal = Principal(role=Role.TENANT_ADMIN, user_id=10, tenant_id=2)
    access = build_access_filter(principal, config=TENANTS)
    assert access.predicates()[0] == Eq("id", 2)


def test_builder_is_idempotent() -> None:
    principal = Principal(role=Role.TEACHER, user_id=4, tenant_id=3)
    first = build_access_filter(principal, config=STUDENTS, tenant_override=8)
    second = build_access_filter(principal, config=STUDENTS, tenant_override=8)
    assert first == second
    assert isinstance(first, AccessFilter)


def test_include_deleted_is_super_admin_only() -> None:
    principal = Principal(role=Role.TENANT_ADMIN, user_id=10, tenant_id=1)
    before = _denials("include_deleted")
    with pytest.raises(ForbiddenError):
        build_access_filter(principal, config=CLIENTS, include_deleted=True)
    assert _denials("include_deleted") - before == 1


def test_super_admin_include_deleted_drops_lifecycle_predicate() -> None:
    access = build_access_filter(SUPER, config=CLIENTS, include_deleted=True)
    assert access.predicates() == ()


# ---- single-record access ----


def test_super_admin_reads_record_in_any_tenant() -> None:
    access = build_access_filter(SUPER, _program(42, tenant_id=7), config=PROGRAMS)
    assert access.is_unrestricted


def test_super_admin_target_ignores_override() -> None:
    access = build_access_filter(
        SUPER, _program(42, tenant_id=7), config=PROGRAMS, tenant_override=3
    )
    assert access.is_unrestricted


def test_same_tenant_target_keeps_principal_tenant() -> None:
    principal = Principal(role=Role.TENANT_ADMIN, user_id=10, tenant_id=7)
    access = build_access_filter(principal, _program(42, tenant_id=7), config=PROGRAMS)
    assert access.tenant_id == principal.tenant_id


def test_cross_tenant_target_is_not_found_and_counted() -> None:
    principal = Principal(role=Role.TEACHER, user_id=10, tenant_id=3)
    before = _denials("cross_tenant")
    with pytest.raises(NotFoundError) as exc_info:
        build_access_filter(principal, _student(10, tenant_id=4), config=STUDENTS)
    assert exc_info.value.error_code == "STUDENT_NOT_FOUND"
    assert _denials("cross_tenant") - before == 1


def test_deleted_target_is_not_found() -> None:
    principal = Principal(role=Role.TENANT_ADMIN, user_id=10, tenant_id=1)
    target = _program(5, tenant_id=1, lifecycle=Deleted(at=T0, by=1), is_active=False)
    with pytest.raises(NotFoundError):
        build_access_filter(principal, target, config=PROGRAMS)


def test_super_admin_can_fetch_deleted_target_with_include_deleted() -> None:
    target = _program(5, tenant_id=1, lifecycle=Deleted(at=T0, by=1))
    access = build_access_filter(SUPER, target, config=PROGRAMS, include_deleted=True)
    assert not access.exclude_deleted


def test_student_sees_only_own_record() -> None:
    principal = Principal(role=Role.STUDENT, user_id=10, tenant_id=3)
    access = build_access_filter(principal, _student(10, tenant_id=3), config=STUDENTS)
    assert Eq("id", 10) in access.predicates()

    with pytest.raises(NotFoundError):
        build_access_filter(principal, _student(11, tenant_id=3), config=STUDENTS)


def test_tenant_admin_reading_tenant_record() -> None:
    principal = Principal(role=Role.TENANT_ADMIN, user_id=10, tenant_id=2)
    own = Tenant(id=2, tenant_name="Acme", created_at=T0, created_by=1)
    other = Tenant(id=3, tenant_name="Globex", created_at=T0, created_by=1)
    build_access_filter(principal, own, config=TENANTS)
    with pytest.raises(NotFoundError):
        build_access_filter(principal, other, config=TENANTS)


# ---- create tenant resolution ----


def test_super_admin_must_name_create_tenant() -> None:
    with pytest.raises(InvalidInputError):
        resolve_create_tenant(SUPER, None)
    assert resolve_create_tenant(SUPER, 9) == 9


def test_tenant_admin_creates_in_own_tenant() -> None:
    principal = Principal(role=Role.TENANT_ADMIN, user_id=10, tenant_id=2)
    assert resolve_create_tenant(principal, None) == 2
    assert resolve_create_tenant(principal, 2) == 2


def test_tenant_admin_cannot_create_for_other_tenant() -> None:
    principal = Principal(role=Role.TENANT_ADMIN, user_id=10, tenant_id=2)
    with pytest.raises(ForbiddenError) as exc_info:
        resolve_create_tenant(principal, 3)
    assert exc_info.value.error_code == "CROSS_TENANT_ACCESS_DENIED"


# ---- audit stamps ----


def test_audit_stamps() -> None:
    principal = Principal(role=Role.TENANT_ADMIN, user_id=10, tenant_id=2)
    assert audit_on_create(principal, "10.0.0.1", T0) == {
        "created_at": T0,
        "created_by": 10,
        "created_ip": "10.0.0.1",
        "is_active": True,
    }
    assert audit_on_update(principal, None, T0) == {
        "updated_at": T0,
        "updated_by": 10,
        "updated_ip": None,
    }
    deleted = audit_on_delete(principal, None, T0)
    assert deleted["lifecycle"] == Deleted(at=T0, by=10)
    assert deleted["is_active"] is False
    assert deleted["updated_by"] == 10
