# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment conflict and conflict resolution DTOs."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from edubalance.utils.datetime import utc_now


class ConflictType(str, Enum):
    """Kinds of enrollment-integrity issue."""

    CAPACITY_EXCEEDED = "capacity_exceeded"
    PREREQUISITE_VIOLATION = "prerequisite_violation"
    SCHEDULE_CONFLICT = "schedule_conflict"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"
    POLICY_VIOLATION = "policy_violation"


class ConflictSeverity(str, Enum):
    """Conflict severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ConflictStatus(str, Enum):
    """Conflict lifecycle."""

    OPEN = "open"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class ResolutionType(str, Enum):
    """Actions available when resolving a conflict."""

    MANUAL_OVERRIDE = "manual_override"
    CAPACITY_INCREASE = "capacity_increase"
    STUDENT_TRANSFER = "student_transfer"
    POLICY_EXCEPTION = "policy_exception"
    DISMISS = "dismiss"


class EnrollmentConflict(BaseModel):
    """A detected enrollment-integrity issue."""

    id: str
    type: ConflictType
    severity: ConflictSeverity
    description: str
    affected_students: int = Field(ge=0)
    class_id: str | None = None
    class_name: str | None = None
    student_id: str | None = None
    student_name: str | None = None
    detected_at: datetime = Field(default_factory=utc_now)
    status: ConflictStatus = ConflictStatus.OPEN


class ConflictResolution(BaseModel):
    """Decision taken on a conflict.

    class_id, target_class_id and capacity_increase parameterize the
    resolution action; which of them is required depends on
    resolution_type.
    """

    conflict_id: str
    resolution_type: ResolutionType
    description: str
    action_taken: str
    resolved_by: str
    resolved_at: datetime = Field(default_factory=utc_now)
    affected_students: list[str] = Field(default_factory=list)
    notes: str | None = None
    class_id: str | None = None
    target_class_id: str | None = None
    capacity_increase: int | None = Field(default=None, gt=0)
