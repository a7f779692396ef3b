# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Balancing domain package.

This package provides:
- SectionBalanceReader: current enrollment/capacity per section
- TransferEligibilityFilter: schedule-aware transfer candidates
- EnrollmentBalancingService: plan generation, approval and execution
"""

from edubalance.domains.balancing.eligibility import (
    TransferEligibilityFilter,
    extract_days,
    schedules_overlap,
)
from edubalance.domains.balancing.reader import SectionBalanceReader
from edubalance.domains.balancing.service import (
    BalancingServiceError,
    EnrollmentBalancingService,
    InvalidOperationStateError,
    OperationNotFoundError,
)

__all__ = [
    "EnrollmentBalancingService",
    "BalancingServiceError",
    "OperationNotFoundError",
    "InvalidOperationStateError",
    "SectionBalanceReader",
    "TransferEligibilityFilter",
    "extract_days",
    "schedules_overlap",
]
