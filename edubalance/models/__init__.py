# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pydantic data transfer objects exchanged with callers."""

from edubalance.models.balancing import (
    BalancingOperation,
    BalancingPlan,
    ExpectedOutcome,
    OperationStatus,
    OperationType,
    SectionBalance,
)
from edubalance.models.conflict import (
    ConflictResolution,
    ConflictSeverity,
    ConflictStatus,
    ConflictType,
    EnrollmentConflict,
    ResolutionType,
)
from edubalance.models.override import (
    ApprovalLevel,
    EnrollmentOverride,
    OverrideCapability,
    OverrideRequest,
    OverrideStatus,
    OverrideType,
)

__all__ = [
    # Balancing
    "SectionBalance",
    "BalancingOperation",
    "BalancingPlan",
    "ExpectedOutcome",
    "OperationType",
    "OperationStatus",
    # Conflicts
    "EnrollmentConflict",
    "ConflictResolution",
    "ConflictType",
    "ConflictSeverity",
    "ConflictStatus",
    "ResolutionType",
    # Overrides
    "OverrideRequest",
    "EnrollmentOverride",
    "OverrideCapability",
    "OverrideType",
    "OverrideStatus",
    "ApprovalLevel",
]
