# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment override DTOs."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class OverrideType(str, Enum):
    """Enrollment rules an override can bypass."""

    ENROLLMENT_OVERRIDE = "enrollment_override"
    PREREQUISITE_OVERRIDE = "prerequisite_override"
    CAPACITY_OVERRIDE = "capacity_override"
    DEADLINE_OVERRIDE = "deadline_override"


class OverrideStatus(str, Enum):
    """Override lifecycle.

    pending -> approved -> executed | execution_failed
    pending -> denied | expired
    """

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    EXPIRED = "expired"
    EXECUTED = "executed"
    EXECUTION_FAILED = "execution_failed"


class ApprovalLevel(str, Enum):
    """Organizational level that signs off an override."""

    DEPARTMENT = "department"
    INSTITUTION = "institution"
    SYSTEM = "system"


class OverrideRequest(BaseModel):
    """Input for requesting a new override."""

    student_id: str
    class_id: str
    override_type: OverrideType
    reason: str = Field(min_length=1)
    requested_by: str
    expires_at: datetime | None = None
    conditions: list[str] | None = None


class EnrollmentOverride(BaseModel):
    """Persisted override as returned to callers."""

    id: str
    student_id: str
    class_id: str
    override_type: OverrideType
    reason: str
    requested_by: str
    status: OverrideStatus
    requested_at: datetime
    approved_by: str | None = None
    approved_at: datetime | None = None
    expires_at: datetime | None = None
    conditions: list[str] | None = None
    notes: str | None = None
    executed_at: datetime | None = None
    execution_error: str | None = None


class OverrideCapability(BaseModel):
    """An override a role may issue."""

    type: OverrideType
    description: str
    requires_approval: bool
    approval_level: ApprovalLevel
    max_overrides: int | None = None
    conditions: list[str] | None = None
