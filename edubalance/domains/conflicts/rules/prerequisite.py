# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Prerequisite violation rule.

Prerequisite data is not modeled in the institution schema yet, so the
pass reports nothing.
"""

from edubalance.domains.conflicts.rules.base import ConflictRule, DetectionContext
from edubalance.models.conflict import ConflictType, EnrollmentConflict


class PrerequisiteRule(ConflictRule):
    """Placeholder pass for prerequisite violations."""

    @property
    def conflict_type(self) -> ConflictType:
        return ConflictType.PREREQUISITE_VIOLATION

    async def evaluate(self, context: DetectionContext) -> list[EnrollmentConflict]:
        return []
