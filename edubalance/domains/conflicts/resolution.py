# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Conflict resolution service.

This module provides the ConflictResolutionService class for applying a
resolution to a detected conflict. The resolution record is appended to
the audit log and its action is applied in the same transaction: either
both are persisted or neither is.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from edubalance.domains.conflicts.rules.capacity import CONFLICT_ID_PREFIX
from edubalance.domains.enrollment import EnrollmentService, EnrollmentServiceError
from edubalance.infrastructure.database.models.tenant import ConflictResolutionRecord
from edubalance.models.conflict import ConflictResolution, ResolutionType

logger = logging.getLogger(__name__)


class ConflictServiceError(Exception):
    """Base exception for conflict service errors."""

    pass


class ConflictResolutionError(ConflictServiceError):
    """Raised when a resolution cannot be recorded or applied."""

    pass


class ConflictResolutionService:
    """Service for resolving detected conflicts.

    Attributes:
        db: Async database session.
        enrollment_service: Applies the enrollment side effects.
    """

    def __init__(
        self,
        db: AsyncSession,
        enrollment_service: EnrollmentService | None = None,
    ) -> None:
        self.db = db
        self.enrollment_service = enrollment_service or EnrollmentService(db)

    async def resolve_conflict(
        self,
        conflict_id: str,
        resolution: ConflictResolution,
    ) -> None:
        """Record a resolution and apply its action.

        Actions:
            capacity_increase: raise the class capacity.
            student_transfer: move the affected students to target_class_id.
            manual_override: force-enroll the affected students.
            policy_exception: flag the affected enrollments policy-exempt.
            dismiss: no action.

        Args:
            conflict_id: Conflict being resolved.
            resolution: The decision taken.

        Raises:
            ConflictResolutionError: If the record or the action fails.
        """
        self.db.add(
            ConflictResolutionRecord(
                conflict_id=conflict_id,
                resolution_type=resolution.resolution_type.value,
                description=resolution.description,
                action_taken=resolution.action_taken,
                resolved_by=resolution.resolved_by,
                resolved_at=resolution.resolved_at,
                affected_students=list(resolution.affected_students),
                class_id=resolution.class_id,
                target_class_id=resolution.target_class_id,
                capacity_increase=resolution.capacity_increase,
                notes=resolution.notes,
            )
        )

        try:
            await self._apply(conflict_id, resolution)
            await self.db.commit()
        except (ConflictServiceError, EnrollmentServiceError, SQLAlchemyError) as e:
            logger.error(
                "Failed to resolve conflict: id=%s, type=%s, error=%s",
                conflict_id,
                resolution.resolution_type.value,
                e,
            )
            await self.db.rollback()
            raise ConflictResolutionError("Failed to resolve conflict") from e

        logger.info(
            "Resolved conflict: id=%s, type=%s, by=%s",
            conflict_id,
            resolution.resolution_type.value,
            resolution.resolved_by,
        )

    async def _apply(self, conflict_id: str, resolution: ConflictResolution) -> None:
        """Dispatch to the resolution action."""
        resolution_type = resolution.resolution_type
        performed_by = resolution.resolved_by

        if resolution_type == ResolutionType.DISMISS:
            return

        class_id = self._resolve_class_id(conflict_id, resolution)

        if resolution_type == ResolutionType.CAPACITY_INCREASE:
            await self.enrollment_service.increase_capacity(
                class_id, resolution.capacity_increase
            )

        elif resolution_type == ResolutionType.STUDENT_TRANSFER:
            if not resolution.target_class_id:
                raise ConflictServiceError("Student transfer requires target_class_id")
            for student_id in resolution.affected_students:
                await self.enrollment_service.transfer_student(
                    student_id,
                    class_id,
                    resolution.target_class_id,
                    performed_by=performed_by,
                )

        elif resolution_type == ResolutionType.MANUAL_OVERRIDE:
            for student_id in resolution.affected_students:
                await self.enrollment_service.force_enroll(
                    student_id,
                    class_id,
                    performed_by=performed_by,
                )

        elif resolution_type == ResolutionType.POLICY_EXCEPTION:
            await self.enrollment_service.mark_policy_exempt(
                class_id, list(resolution.affected_students)
            )

    @staticmethod
    def _resolve_class_id(conflict_id: str, resolution: ConflictResolution) -> str:
        """Class targeted by the resolution.

        Explicit class_id wins; capacity conflict ids embed their class id.

        Raises:
            ConflictServiceError: If no class can be determined.
        """
        if resolution.class_id:
            return resolution.class_id
        if conflict_id.startswith(CONFLICT_ID_PREFIX):
            return conflict_id[len(CONFLICT_ID_PREFIX):]
        raise ConflictServiceError(
            f"Resolution {resolution.resolution_type.value} requires class_id"
        )
