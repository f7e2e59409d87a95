"""client tenants and specializations

Revision ID: 8c4e2d9b7a15
Revises: 3b1f7c2a9d40
Create Date: 2026-10-17 12:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8c4e2d9b7a15"
down_revision: str | Sequence[str] | None = "3b1f7c2a9d40"
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
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id"), nullable=False),
    ]


_NEW_TABLES = ("client_tenants", "specializations", "specialization_programs")


def upgrade() -> None:
    # Course names, not codes, are unique per tenant.
    op.drop_index("ix_courses_tenant_code", table_name="courses")
    op.create_index("ix_courses_tenant_name", "courses", ["tenant_id", "course_name"])

    op.create_table(
        "client_tenants",
        *_audit_columns(),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=False),
    )
    op.create_index(
        "ix_client_tenants_tenant_client", "client_tenants", ["tenant_id", "client_id"]
    )
    op.create_index("ix_client_tenants_client_id", "client_tenants", ["client_id"])

    op.create_table(
        "specializations",
        *_audit_columns(),
        sa.Column("specialization_name", sa.String(length=255), nullable=False),
        sa.Column("specialization_code", sa.String(length=64), nullable=True),
        sa.Column("specialization_description", sa.Text(), nullable=True),
        sa.Column("specialization_thumbnail_url", sa.Text(), nullable=True),
    )

    op.create_table(
        "specialization_programs",
        *_audit_columns(),
        sa.Column(
            "specialization_id",
            sa.Integer(),
            sa.ForeignKey("specializations.id"),
            nullable=False,
        ),
        sa.Column(
            "program_id", sa.Integer(), sa.ForeignKey("programs.id"), nullable=False
        ),
    )
    op.create_index(
        "ix_specialization_programs_pair",
        "specialization_programs",
        ["specialization_id", "program_id"],
    )
    op.create_index(
        "ix_specialization_programs_program_id", "specialization_programs", ["program_id"]
    )

    for table in _NEW_TABLES:
        op.create_index(f"ix_{table}_is_deleted", table, ["is_deleted"])
        op.create_index(f"ix_{table}_tenant_id", table, ["tenant_id"])


def downgrade() -> None:
    for table in ("specialization_programs", "specializations", "client_tenants"):
        op.drop_table(table)
    op.drop_index("ix_courses_tenant_name", table_name="courses")
    op.create_index("ix_courses_tenant_code", "courses", ["tenant_id", "course_code"])
