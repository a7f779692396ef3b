# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Overrides domain package."""

from edubalance.domains.overrides.service import (
    EnrollmentOverrideService,
    InvalidOverrideStateError,
    OverrideExpiredError,
    OverrideNotFoundError,
    OverrideServiceError,
)

__all__ = [
    "EnrollmentOverrideService",
    "OverrideServiceError",
    "OverrideNotFoundError",
    "InvalidOverrideStateError",
    "OverrideExpiredError",
]
