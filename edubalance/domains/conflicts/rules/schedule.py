# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Schedule conflict rule.

Detection across existing enrollments is not performed; day-overlap
checks only guard new transfers (see domains.balancing.eligibility).
"""

from edubalance.domains.conflicts.rules.base import ConflictRule, DetectionContext
from edubalance.models.conflict import ConflictType, EnrollmentConflict


class ScheduleRule(ConflictRule):
    """Placeholder pass for schedule conflicts."""

    @property
    def conflict_type(self) -> ConflictType:
        return ConflictType.SCHEDULE_CONFLICT

    async def evaluate(self, context: DetectionContext) -> list[EnrollmentConflict]:
        return []
