"""SQLAlchemy table definitions.

These map to the frozen dataclass records in app/models/.  The domain
records stay as-is; these rows are the persistence layer, and
PgRecordStore converts between the two.

The lifecycle tag is stored as three columns (is_deleted, deleted_at,
deleted_by) so live-row filters stay a plain indexed boolean test.

Per-tenant uniqueness (client email, course name, ...) is enforced by
the service layer among *live* rows only, so the database carries plain
composite indexes rather than unique constraints that would also trip
over soft-deleted rows.
"""

from __future__ import annotations

import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from app.db.engine import Base
from app.models.entities import ClientStatus, CourseStatus, StudentStatus, TenantStatus


def _status(enum_cls: type) -> Enum:
    # VARCHAR + application-side enum; avoids a PG enum type per status.
    return Enum(enum_cls, native_enum=False, length=32)


class AuditColumns:
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True
    )
    deleted_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    deleted_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    created_by: Mapped[int] = mapped_column(Integer, nullable=False)
    created_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    updated_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    updated_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)


class TenantScopedColumns(AuditColumns):
    @declared_attr
    def tenant_id(cls) -> Mapped[int]:
        return mapped_column(
            Integer, ForeignKey("tenants.id"), nullable=False, index=True
        )


class TenantRow(AuditColumns, Base):
    __tablename__ = "tenants"

    tenant_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    tenant_status: Mapped[TenantStatus] = mapped_column(
        _status(TenantStatus), nullable=False, default=TenantStatus.ACTIVE
    )


class ClientRow(TenantScopedColumns, Base):
    __tablename__ = "clients"
    __table_args__ = (Index("ix_clients_tenant_email", "tenant_id", "email_address"),)

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email_address: Mapped[str] = mapped_column(String(320), nullable=False)
    dial_code: Mapped[str | None] = mapped_column(String(8), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    client_status: Mapped[ClientStatus] = mapped_column(
        _status(ClientStatus), nullable=False, default=ClientStatus.ACTIVE
    )


class ProgramRow(TenantScopedColumns, Base):
    __tablename__ = "programs"
    __table_args__ = (Index("ix_programs_tenant_name", "tenant_id", "program_name"),)

    program_name: Mapped[str] = mapped_column(String(255), nullable=False)
    program_thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)


class CourseRow(TenantScopedColumns, Base):
    __tablename__ = "courses"
    __table_args__ = (Index("ix_courses_tenant_name", "tenant_id", "course_name"),)

    course_name: Mapped[str] = mapped_column(String(255), nullable=False)
    course_code: Mapped[str] = mapped_column(String(64), nullable=False)
    program_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("programs.id"), nullable=False, index=True
    )
    course_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    course_status: Mapped[CourseStatus] = mapped_column(
        _status(CourseStatus), nullable=False, default=CourseStatus.DRAFT
    )
    course_total_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)


class StudentRow(TenantScopedColumns, Base):
    __tablename__ = "students"
    __table_args__ = (Index("ix_students_tenant_username", "tenant_id", "username"),)

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(128), nullable=False)
    last_name: Mapped[str] = mapped_column(String(128), nullable=False)
    email_address: Mapped[str] = mapped_column(String(320), nullable=False)
    username: Mapped[str] = mapped_column(String(128), nullable=False)
    student_status: Mapped[StudentStatus] = mapped_column(
        _status(StudentStatus), nullable=False, default=StudentStatus.ACTIVE
    )


class TeacherRow(TenantScopedColumns, Base):
    __tablename__ = "teachers"
    __table_args__ = (Index("ix_teachers_tenant_username", "tenant_id", "username"),)

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(128), nullable=False)
    last_name: Mapped[str] = mapped_column(String(128), nullable=False)
    email_address: Mapped[str] = mapped_column(String(320), nullable=False)
    username: Mapped[str] = mapped_column(String(128), nullable=False)
    teacher_qualification: Mapped[str | None] = mapped_column(Text, nullable=True)


class ClientTenantRow(TenantScopedColumns, Base):
    """tenant_id is the tenant the client is served in."""

    __tablename__ = "client_tenants"
    __table_args__ = (Index("ix_client_tenants_tenant_client", "tenant_id", "client_id"),)

    client_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("clients.id"), nullable=False, index=True
    )


class SpecializationRow(TenantScopedColumns, Base):
    __tablename__ = "specializations"

    specialization_name: Mapped[str] = mapped_column(String(255), nullable=False)
    specialization_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    specialization_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    specialization_thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)


class SpecializationProgramRow(TenantScopedColumns, Base):
    __tablename__ = "specialization_programs"
    __table_args__ = (
        Index("ix_specialization_programs_pair", "specialization_id", "program_id"),
    )

    specialization_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("specializations.id"), nullable=False
    )
    program_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("programs.id"), nullable=False, index=True
    )
