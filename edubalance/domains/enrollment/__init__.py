# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment domain package.

This package provides the enrollment side effects used by engine workflows:
- Forced enrollment
- Section transfers
- Capacity increases and policy exemptions
"""

from edubalance.domains.enrollment.service import (
    ClassNotFoundError,
    EnrollmentService,
    EnrollmentServiceError,
    NotEnrolledError,
)

__all__ = [
    "EnrollmentService",
    "EnrollmentServiceError",
    "ClassNotFoundError",
    "NotEnrolledError",
]
