# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Institution database models."""

from edubalance.infrastructure.database.models.tenant.balancing import BalancingOperationRecord
from edubalance.infrastructure.database.models.tenant.enrollment import (
    ENROLLED,
    TRANSFERRED,
    WITHDRAWN,
    Enrollment,
    EnrollmentAuditLog,
)
from edubalance.infrastructure.database.models.tenant.override import (
    ConflictResolutionRecord,
    EnrollmentOverrideRecord,
)
from edubalance.infrastructure.database.models.tenant.school import Class, Department, User

__all__ = [
    # Organization
    "Department",
    "Class",
    "User",
    # Enrollment
    "Enrollment",
    "EnrollmentAuditLog",
    "ENROLLED",
    "TRANSFERRED",
    "WITHDRAWN",
    # Balancing
    "BalancingOperationRecord",
    # Overrides and resolutions
    "EnrollmentOverrideRecord",
    "ConflictResolutionRecord",
]
