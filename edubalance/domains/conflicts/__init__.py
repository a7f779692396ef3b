# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Conflicts domain package.

This package provides:
- EnrollmentConflictDetector: runs the detection rules per institution
- ConflictResolutionService: records and applies conflict resolutions
"""

from edubalance.domains.conflicts.resolution import (
    ConflictResolutionError,
    ConflictResolutionService,
    ConflictServiceError,
)
from edubalance.domains.conflicts.service import EnrollmentConflictDetector

__all__ = [
    "EnrollmentConflictDetector",
    "ConflictResolutionService",
    "ConflictServiceError",
    "ConflictResolutionError",
]
