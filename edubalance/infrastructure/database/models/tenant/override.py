# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment override requests and conflict resolution log."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from edubalance.infrastructure.database.models.base import Base, new_uuid
from edubalance.utils.datetime import utc_now


class EnrollmentOverrideRecord(Base):
    """An administrator-issued exception to normal enrollment rules.

    Status moves pending -> approved -> executed | execution_failed,
    or pending -> denied | expired.
    """

    __tablename__ = "enrollment_overrides"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_uuid)
    student_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    class_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    override_type: Mapped[str] = mapped_column(String(40), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    requested_by: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
    approved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    conditions: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    executed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    execution_error: Mapped[str | None] = mapped_column(Text, nullable=True)


class ConflictResolutionRecord(Base):
    """Append-only audit entry for a resolved or dismissed conflict."""

    __tablename__ = "conflict_resolutions"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=new_uuid)
    conflict_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    resolution_type: Mapped[str] = mapped_column(String(40), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    action_taken: Mapped[str] = mapped_column(Text, nullable=False)
    resolved_by: Mapped[str] = mapped_column(String(255), nullable=False)
    resolved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
    affected_students: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    class_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)
    target_class_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)
    capacity_increase: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
