# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial EduBalance schema.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2025-06-02
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def upgrade() -> None:
    """Create EduBalance tables."""
    # =========================================================================
    # ORGANIZATION TABLES
    # =========================================================================

    op.create_table(
        "departments",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=False),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("institution_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_departments_institution_id", "departments", ["institution_id"])

    op.create_table(
        "users",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=False),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("full_name", sa.String(200), nullable=True),
        sa.Column("user_type", sa.String(20), nullable=False, server_default="student"),
        *_timestamps(),
    )

    op.create_table(
        "classes",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=False),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column(
            "department_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("departments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("capacity", sa.Integer, nullable=False, server_default="0"),
        sa.Column("current_enrollment", sa.Integer, nullable=False, server_default="0"),
        sa.Column("schedule", sa.Text, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        *_timestamps(),
        sa.CheckConstraint("capacity >= 0", name="capacity_non_negative"),
    )
    op.create_index("ix_classes_department_id", "classes", ["department_id"])

    # =========================================================================
    # ENROLLMENT TABLES
    # =========================================================================

    op.create_table(
        "enrollments",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=False),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column(
            "student_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "class_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("classes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="enrolled"),
        sa.Column(
            "enrolled_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("withdrawn_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("prerequisite_exempt", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("policy_exempt", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("override_id", sa.String(64), nullable=True),
    )
    op.create_index("ix_enrollments_class_status", "enrollments", ["class_id", "status"])
    op.create_index("ix_enrollments_student_status", "enrollments", ["student_id", "status"])

    op.create_table(
        "enrollment_audit_log",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=False),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("student_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "class_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("classes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("action", sa.String(40), nullable=False),
        sa.Column("performed_by", sa.String(255), nullable=True),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index("ix_enrollment_audit_log_student_id", "enrollment_audit_log", ["student_id"])
    op.create_index(
        "ix_enrollment_audit_log_action_timestamp",
        "enrollment_audit_log",
        ["action", "timestamp"],
    )

    # =========================================================================
    # BALANCING, OVERRIDE AND RESOLUTION TABLES
    # =========================================================================

    op.create_table(
        "enrollment_balancing_operations",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column(
            "department_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("departments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("operation_type", sa.String(20), nullable=False),
        sa.Column(
            "from_section_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("classes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "to_section_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("classes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("student_ids", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("reason", sa.Text, nullable=False),
        sa.Column("estimated_impact", sa.Text, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("failure_reason", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_enrollment_balancing_operations_department_id",
        "enrollment_balancing_operations",
        ["department_id"],
    )

    op.create_table(
        "enrollment_overrides",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("student_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("class_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("override_type", sa.String(40), nullable=False),
        sa.Column("reason", sa.Text, nullable=False),
        sa.Column("requested_by", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column(
            "requested_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("approved_by", sa.String(255), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("conditions", postgresql.JSONB, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("executed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("execution_error", sa.Text, nullable=True),
    )
    op.create_index("ix_enrollment_overrides_student_id", "enrollment_overrides", ["student_id"])
    op.create_index("ix_enrollment_overrides_class_id", "enrollment_overrides", ["class_id"])
    op.create_index("ix_enrollment_overrides_status", "enrollment_overrides", ["status"])

    op.create_table(
        "conflict_resolutions",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=False),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("conflict_id", sa.String(128), nullable=False),
        sa.Column("resolution_type", sa.String(40), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("action_taken", sa.Text, nullable=False),
        sa.Column("resolved_by", sa.String(255), nullable=False),
        sa.Column(
            "resolved_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("affected_students", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("class_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("target_class_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("capacity_increase", sa.Integer, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
    )
    op.create_index("ix_conflict_resolutions_conflict_id", "conflict_resolutions", ["conflict_id"])


def downgrade() -> None:
    """Drop EduBalance tables."""
    op.drop_table("conflict_resolutions")
    op.drop_table("enrollment_overrides")
    op.drop_table("enrollment_balancing_operations")
    op.drop_table("enrollment_audit_log")
    op.drop_table("enrollments")
    op.drop_table("classes")
    op.drop_table("users")
    op.drop_table("departments")
