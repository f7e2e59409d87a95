from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from app.models.record import Record, TenantRecord


class TenantStatus(StrEnum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    TRIAL = "TRIAL"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class ClientStatus(StrEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    TERMINATED = "TERMINATED"


class CourseStatus(StrEnum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"
    SUSPENDED = "SUSPENDED"


class StudentStatus(StrEnum):
    ACTIVE = "ACTIVE"
    ALUMNI = "ALUMNI"
    DROPOUT = "DROPOUT"
    ACCOUNT_FREEZED = "ACCOUNT_FREEZED"
    BLACKLISTED = "BLACKLISTED"
    SUSPENDED = "SUSPENDED"
    DEACTIVATED = "DEACTIVATED"


@dataclass(frozen=True, slots=True, kw_only=True)
class Tenant(Record):
    """A tenant is its own isolation boundary: its tenant key is its id."""

    tenant_name: str
    tenant_status: TenantStatus = TenantStatus.ACTIVE


@dataclass(frozen=True, slots=True, kw_only=True)
class Client(TenantRecord):
    full_name: str
    email_address: str
    dial_code: str | None = None
    phone_number: str | None = None
    address: str | None = None
    client_status: ClientStatus = ClientStatus.ACTIVE


@dataclass(frozen=True, slots=True, kw_only=True)
class Program(TenantRecord):
    program_name: str
    program_thumbnail_url: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class Course(TenantRecord):
    course_name: str
    course_code: str
    program_id: int
    course_description: str | None = None
    course_status: CourseStatus = CourseStatus.DRAFT
    course_total_hours: int | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class Student(TenantRecord):
    full_name: str
    first_name: str
    last_name: str
    email_address: str
    username: str
    student_status: StudentStatus = StudentStatus.ACTIVE


@dataclass(frozen=True, slots=True, kw_only=True)
class Teacher(TenantRecord):
    full_name: str
    first_name: str
    last_name: str
    email_address: str
    username: str
    teacher_qualification: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ClientTenant(TenantRecord):
    """Links a client to a tenant it serves; tenant_id is the served tenant."""

    client_id: int


@dataclass(frozen=True, slots=True, kw_only=True)
class Specialization(TenantRecord):
    specialization_name: str
    specialization_code: str | None = None
    specialization_description: str | None = None
    specialization_thumbnail_url: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class SpecializationProgram(TenantRecord):
    specialization_id: int
    program_id: int
