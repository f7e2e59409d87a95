"""create lms tables

Revision ID: 3b1f7c2a9d40
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b1f7c2a9d40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("created_ip", sa.String(length=64), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_by", sa.Integer(), nullable=True),
        sa.Column("updated_ip", sa.String(length=64), nullable=True),
    ]


def _tenant_column() -> sa.Column:
    return sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id"), nullable=False)


def _status(name: str) -> sa.Column:
    return sa.Column(name, sa.String(length=32), nullable=False)


_SCOPED_TABLES = ("clients", "programs", "courses", "students", "teachers")


def upgrade() -> None:
    op.create_table(
        "tenants",
        *_audit_columns(),
        sa.Column("tenant_name", sa.String(length=255), nullable=False),
        _status("tenant_status"),
    )
    op.create_index("ix_tenants_tenant_name", "tenants", ["tenant_name"])

    op.create_table(
        "clients",
        *_audit_columns(),
        _tenant_column(),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("email_address", sa.String(length=320), nullable=False),
        sa.Column("dial_code", sa.String(length=8), nullable=True),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        _status("client_status"),
    )
    op.create_index("ix_clients_tenant_email", "clients", ["tenant_id", "email_address"])

    op.create_table(
        "programs",
        *_audit_columns(),
        _tenant_column(),
        sa.Column("program_name", sa.String(length=255), nullable=False),
        sa.Column("program_thumbnail_url", sa.Text(), nullable=True),
    )
    op.create_index("ix_programs_tenant_name", "programs", ["tenant_id", "program_name"])

    op.create_table(
        "courses",
        *_audit_columns(),
        _tenant_column(),
        sa.Column("course_name", sa.String(length=255), nullable=False),
        sa.Column("course_code", sa.String(length=64), nullable=False),
        sa.Column(
            "program_id", sa.Integer(), sa.ForeignKey("programs.id"), nullable=False
        ),
        sa.Column("course_description", sa.Text(), nullable=True),
        _status("course_status"),
        sa.Column("course_total_hours", sa.Integer(), nullable=True),
    )
    op.create_index("ix_courses_tenant_code", "courses", ["tenant_id", "course_code"])
    op.create_index("ix_courses_program_id", "courses", ["program_id"])

    for table in ("students", "teachers"):
        extra = (
            _status("student_status")
            if table == "students"
            else sa.Column("teacher_qualification", sa.Text(), nullable=True)
        )
        op.create_table(
            table,
            *_audit_columns(),
            _tenant_column(),
            sa.Column("full_name", sa.String(length=255), nullable=False),
            sa.Column("first_name", sa.String(length=128), nullable=False),
            sa.Column("last_name", sa.String(length=128), nullable=False),
            sa.Column("email_address", sa.String(length=320), nullable=False),
            sa.Column("username", sa.String(length=128), nullable=False),
            extra,
        )
        op.create_index(f"ix_{table}_tenant_username", table, ["tenant_id", "username"])

    for table in ("tenants", *_SCOPED_TABLES):
        op.create_index(f"ix_{table}_is_deleted", table, ["is_deleted"])
    for table in _SCOPED_TABLES:
        op.create_index(f"ix_{table}_tenant_id", table, ["tenant_id"])


def downgrade() -> None:
    for table in ("courses", "students", "teachers", "clients", "programs", "tenants"):
        op.drop_table(table)
