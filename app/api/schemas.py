"""Pydantic request/response schemas for the record endpoints.

Create schemas carry an optional tenant_id: super admins must name the
target tenant, everyone else may omit it.  Update schemas are partial
and forbid unknown keys, so a PATCH can never smuggle in tenant_id.
"""

from __future__ import annotations

import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.models.entities import ClientStatus, CourseStatus, StudentStatus, TenantStatus

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class _Out(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    is_active: bool
    is_deleted: bool
    created_at: datetime.datetime
    created_by: int
    updated_at: datetime.datetime | None = None
    updated_by: int | None = None


class _TenantScopedOut(_Out):
    tenant_id: int


class _Create(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tenant_id: int | None = Field(default=None, ge=1)


class _Update(BaseModel):
    model_config = ConfigDict(extra="forbid")

    is_active: bool | None = None


class PaginationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


# --- Tenants ---


class TenantOut(_Out):
    tenant_name: str
    tenant_status: TenantStatus


class TenantCreateIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tenant_name: str = Field(min_length=1, max_length=255)
    tenant_status: TenantStatus = TenantStatus.ACTIVE


class TenantUpdateIn(_Update):
    tenant_name: str | None = Field(default=None, min_length=1, max_length=255)
    tenant_status: TenantStatus | None = None


# --- Clients ---


class ClientOut(_TenantScopedOut):
    full_name: str
    email_address: str
    dial_code: str | None
    phone_number: str | None
    address: str | None
    client_status: ClientStatus


class ClientCreateIn(_Create):
    full_name: str = Field(min_length=1, max_length=255)
    email_address: str = Field(max_length=320, pattern=EMAIL_PATTERN)
    dial_code: str | None = Field(default=None, max_length=8)
    phone_number: str | None = Field(default=None, max_length=32)
    address: str | None = None
    client_status: ClientStatus = ClientStatus.ACTIVE


class ClientUpdateIn(_Update):
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    email_address: str | None = Field(default=None, max_length=320, pattern=EMAIL_PATTERN)
    dial_code: str | None = Field(default=None, max_length=8)
    phone_number: str | None = Field(default=None, max_length=32)
    address: str | None = None
    client_status: ClientStatus | None = None


# --- Programs ---


class ProgramOut(_TenantScopedOut):
    program_name: str
    program_thumbnail_url: str | None


class ProgramCreateIn(_Create):
    program_name: str = Field(min_length=1, max_length=255)
    program_thumbnail_url: str | None = None


class ProgramUpdateIn(_Update):
    program_name: str | None = Field(default=None, min_length=1, max_length=255)
    program_thumbnail_url: str | None = None


# --- Courses ---


class CourseOut(_TenantScopedOut):
    course_name: str
    course_code: str
    program_id: int
    course_description: str | None
    course_status: CourseStatus
    course_total_hours: int | None


class CourseCreateIn(_Create):
    course_name: str = Field(min_length=1, max_length=255)
    course_code: str = Field(min_length=1, max_length=64)
    program_id: int = Field(ge=1)
    course_description: str | None = None
    course_status: CourseStatus = CourseStatus.DRAFT
    course_total_hours: int | None = Field(default=None, ge=0)


class CourseUpdateIn(_Update):
    course_name: str | None = Field(default=None, min_length=1, max_length=255)
    course_code: str | None = Field(default=None, min_length=1, max_length=64)
    program_id: int | None = Field(default=None, ge=1)
    course_description: str | None = None
    course_status: CourseStatus | None = None
    course_total_hours: int | None = Field(default=None, ge=0)


# --- Students ---


class StudentOut(_TenantScopedOut):
    full_name: str
    first_name: str
    last_name: str
    email_address: str
    username: str
    student_status: StudentStatus


class StudentCreateIn(_Create):
    full_name: str = Field(min_length=1, max_length=255)
    first_name: str = Field(min_length=1, max_length=128)
    last_name: str = Field(min_length=1, max_length=128)
    email_address: str = Field(max_length=320, pattern=EMAIL_PATTERN)
    username: str = Field(min_length=3, max_length=128)
    student_status: StudentStatus = StudentStatus.ACTIVE


class StudentUpdateIn(_Update):
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    first_name: str | None = Field(default=None, min_length=1, max_length=128)
    last_name: str | None = Field(default=None, min_length=1, max_length=128)
    email_address: str | None = Field(default=None, max_length=320, pattern=EMAIL_PATTERN)
    username: str | None = Field(default=None, min_length=3, max_length=128)
    student_status: StudentStatus | None = None


# --- Teachers ---


class TeacherOut(_TenantScopedOut):
    full_name: str
    first_name: str
    last_name: str
    email_address: str
    username: str
    teacher_qualification: str | None


class TeacherCreateIn(_Create):
    full_name: str = Field(min_length=1, max_length=255)
    first_name: str = Field(min_length=1, max_length=128)
    last_name: str = Field(min_length=1, max_length=128)
    email_address: str = Field(max_length=320, pattern=EMAIL_PATTERN)
    username: str = Field(min_length=3, max_length=128)
    teacher_qualification: str | None = None


class TeacherUpdateIn(_Update):
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    first_name: str | None = Field(default=None, min_length=1, max_length=128)
    last_name: str | None = Field(default=None, min_length=1, max_length=128)
    email_address: str | None = Field(default=None, max_length=320, pattern=EMAIL_PATTERN)
    username: str | None = Field(default=None, min_length=3, max_length=128)
    teacher_qualification: str | None = None


# --- Client-tenant associations ---


class ClientTenantOut(_TenantScopedOut):
    client_id: int


class ClientTenantCreateIn(_Create):
    client_id: int = Field(ge=1)


# --- Specializations ---


class SpecializationOut(_TenantScopedOut):
    specialization_name: str
    specialization_code: str | None
    specialization_description: str | None
    specialization_thumbnail_url: str | None


class SpecializationCreateIn(_Create):
    specialization_name: str = Field(min_length=1, max_length=255)
    specialization_code: str | None = Field(default=None, max_length=64)
    specialization_description: str | None = None
    specialization_thumbnail_url: str | None = None


class SpecializationUpdateIn(_Update):
    specialization_name: str | None = Field(default=None, min_length=1, max_length=255)
    specialization_code: str | None = Field(default=None, max_length=64)
    specialization_description: str | None = None
    specialization_thumbnail_url: str | None = None


class SpecializationProgramOut(_TenantScopedOut):
    specialization_id: int
    program_id: int


class SpecializationProgramCreateIn(_Create):
    specialization_id: int = Field(ge=1)
    program_id: int = Field(ge=1)
