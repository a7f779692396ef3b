# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Capacity violation rule."""

from sqlalchemy import select

from edubalance.domains.conflicts.rules.base import ConflictRule, DetectionContext
from edubalance.infrastructure.database.models.tenant import Class, Department
from edubalance.models.conflict import ConflictSeverity, ConflictType, EnrollmentConflict

CONFLICT_ID_PREFIX = "capacity-violation-"


class CapacityRule(ConflictRule):
    """Flags classes whose enrollment exceeds their capacity."""

    @property
    def conflict_type(self) -> ConflictType:
        return ConflictType.CAPACITY_EXCEEDED

    async def evaluate(self, context: DetectionContext) -> list[EnrollmentConflict]:
        query = (
            select(Class.id, Class.name, Class.capacity, Class.current_enrollment)
            .join(Department, Department.id == Class.department_id)
            .where(
                Department.institution_id == context.institution_id,
                Class.current_enrollment > Class.capacity,
            )
        )
        result = await context.db.execute(query)

        conflicts = [
            EnrollmentConflict(
                id=f"{CONFLICT_ID_PREFIX}{row.id}",
                type=self.conflict_type,
                severity=ConflictSeverity.HIGH,
                description=(
                    f'Class "{row.name}" has exceeded its capacity of {row.capacity} '
                    f"with {row.current_enrollment} enrolled students"
                ),
                affected_students=row.current_enrollment - row.capacity,
                class_id=row.id,
                class_name=row.name,
                detected_at=context.detected_at,
            )
            for row in result.all()
        ]

        self.logger.debug(
            "Capacity violations: institution=%s, count=%d",
            context.institution_id,
            len(conflicts),
        )
        return conflicts
