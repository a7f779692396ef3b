# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment and enrollment audit trail models."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from edubalance.infrastructure.database.models.base import Base, new_uuid
from edubalance.infrastructure.database.models.tenant.school import Class
from edubalance.utils.datetime import utc_now

ENROLLED = "enrolled"
TRANSFERRED = "transferred"
WITHDRAWN = "withdrawn"


class Enrollment(Base):
    """A student's enrollment in a class section.

    Attributes:
        status: enrolled, transferred or withdrawn.
        prerequisite_exempt: Set by an approved prerequisite override.
        policy_exempt: Set by a policy-exception conflict resolution.
        override_id: Override that forced this enrollment, if any.
    """

    __tablename__ = "enrollments"
    __table_args__ = (
        Index("ix_enrollments_class_status", "class_id", "status"),
        Index("ix_enrollments_student_status", "student_id", "status"),
    )

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=new_uuid)
    student_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    class_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("classes.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ENROLLED)
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
    withdrawn_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    prerequisite_exempt: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    policy_exempt: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    override_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    class_: Mapped[Class] = relationship()


class EnrollmentAuditLog(Base):
    """Append-only trail of enrollment actions (enrolled, transferred, ...)."""

    __tablename__ = "enrollment_audit_log"
    __table_args__ = (
        Index("ix_enrollment_audit_log_action_timestamp", "action", "timestamp"),
    )

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=new_uuid)
    student_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    class_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("classes.id", ondelete="CASCADE"),
        nullable=False,
    )
    action: Mapped[str] = mapped_column(String(40), nullable=False)
    performed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
