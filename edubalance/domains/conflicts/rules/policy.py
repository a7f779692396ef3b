# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Policy violation rule."""

from edubalance.domains.conflicts.rules.base import ConflictRule, DetectionContext
from edubalance.models.conflict import ConflictType, EnrollmentConflict


class PolicyRule(ConflictRule):
    """Placeholder pass for institution policy violations."""

    @property
    def conflict_type(self) -> ConflictType:
        return ConflictType.POLICY_VIOLATION

    async def evaluate(self, context: DetectionContext) -> list[EnrollmentConflict]:
        return []
