# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Suspicious enrollment activity rule."""

from collections import Counter

from sqlalchemy import select

from edubalance.domains.conflicts.rules.base import ConflictRule, DetectionContext
from edubalance.infrastructure.database.models.tenant import (
    Class,
    Department,
    EnrollmentAuditLog,
    User,
)
from edubalance.models.conflict import ConflictSeverity, ConflictType, EnrollmentConflict
from edubalance.utils.datetime import hours_ago

ENROLLED_ACTION = "enrolled"


class SuspiciousActivityRule(ConflictRule):
    """Flags students with an unusual burst of enrollment events.

    A student is flagged when their 'enrolled' audit events in the trailing
    window strictly exceed the threshold.

    Attributes:
        window_hours: Trailing window scanned.
        threshold: Events tolerated within the window.
    """

    def __init__(self, window_hours: int = 24, threshold: int = 10) -> None:
        super().__init__()
        self.window_hours = window_hours
        self.threshold = threshold

    @property
    def conflict_type(self) -> ConflictType:
        return ConflictType.SUSPICIOUS_ACTIVITY

    async def evaluate(self, context: DetectionContext) -> list[EnrollmentConflict]:
        query = (
            select(EnrollmentAuditLog.student_id, User.email)
            .join(User, User.id == EnrollmentAuditLog.student_id)
            .join(Class, Class.id == EnrollmentAuditLog.class_id)
            .join(Department, Department.id == Class.department_id)
            .where(
                Department.institution_id == context.institution_id,
                EnrollmentAuditLog.action == ENROLLED_ACTION,
                EnrollmentAuditLog.timestamp >= hours_ago(self.window_hours),
            )
        )
        result = await context.db.execute(query)

        counts: Counter[str] = Counter()
        emails: dict[str, str] = {}
        for row in result.all():
            counts[row.student_id] += 1
            emails[row.student_id] = row.email

        conflicts = [
            EnrollmentConflict(
                id=f"suspicious-activity-{student_id}",
                type=self.conflict_type,
                severity=ConflictSeverity.MEDIUM,
                description=(
                    f"Student {emails[student_id]} has enrolled in {count} classes "
                    f"in the last {self.window_hours} hours"
                ),
                affected_students=1,
                student_id=student_id,
                student_name=emails[student_id],
                detected_at=context.detected_at,
            )
            for student_id, count in counts.items()
            if count > self.threshold
        ]

        self.logger.debug(
            "Suspicious activity: institution=%s, students=%d, flagged=%d",
            context.institution_id,
            len(counts),
            len(conflicts),
        )
        return conflicts
