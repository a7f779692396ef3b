# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment side effects shared by balancing, overrides and resolutions.

This module provides the EnrollmentService class for:
- Forced enrollment (override execution, manual overrides)
- Section-to-section student transfers
- Capacity increases and policy exemptions

Methods stage changes on the session and flush, but never commit: the
calling workflow owns the transaction so that a multi-student action is
applied or rolled back as one unit.
"""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from edubalance.infrastructure.database.models.tenant import (
    ENROLLED,
    TRANSFERRED,
    Class,
    Enrollment,
    EnrollmentAuditLog,
)
from edubalance.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class EnrollmentServiceError(Exception):
    """Base exception for enrollment service errors."""

    pass


class ClassNotFoundError(EnrollmentServiceError):
    """Raised when class is not found."""

    pass


class NotEnrolledError(EnrollmentServiceError):
    """Raised when student is not enrolled in class."""

    pass


class EnrollmentService:
    """Service applying enrollment changes on behalf of engine workflows.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize enrollment service.

        Args:
            db: Async database session for the institution database.
        """
        self.db = db

    async def force_enroll(
        self,
        student_id: str,
        class_id: str,
        performed_by: str | None = None,
        override_id: str | None = None,
        prerequisite_exempt: bool = False,
    ) -> Enrollment:
        """Enroll a student regardless of capacity, deadline or prerequisites.

        An already active enrollment is kept (only its flags are updated)
        so the class counter is never incremented twice.

        Args:
            student_id: Student identifier.
            class_id: Class identifier.
            performed_by: User or process performing the enrollment.
            override_id: Override that authorized the enrollment.
            prerequisite_exempt: Flag the enrollment as prerequisite-exempt.

        Returns:
            The active enrollment.

        Raises:
            ClassNotFoundError: If class not found.
        """
        class_ = await self._get_class(class_id)
        enrollment = await self._get_enrollment(class_id, student_id)

        if enrollment and enrollment.status == ENROLLED:
            enrollment.prerequisite_exempt = enrollment.prerequisite_exempt or prerequisite_exempt
            enrollment.override_id = override_id or enrollment.override_id
            await self.db.flush()
            logger.info(
                "Student already enrolled, override flags updated: student=%s, class=%s",
                student_id,
                class_id,
            )
            return enrollment

        enrollment = self._activate(enrollment, student_id, class_id)
        enrollment.prerequisite_exempt = prerequisite_exempt
        enrollment.override_id = override_id
        class_.current_enrollment = (class_.current_enrollment or 0) + 1

        self._audit(student_id, class_id, "override_enrolled", performed_by)
        await self.db.flush()

        logger.info(
            "Force-enrolled student: student=%s, class=%s, enrollment=%d/%d, by=%s",
            student_id,
            class_id,
            class_.current_enrollment,
            class_.capacity,
            performed_by,
        )
        return enrollment

    async def transfer_student(
        self,
        student_id: str,
        from_class_id: str,
        to_class_id: str,
        performed_by: str | None = None,
    ) -> Enrollment:
        """Move an active enrollment from one section to another.

        If the student is already actively enrolled in the destination,
        only the source side is closed: the destination keeps its existing
        enrollment and its counter is left unchanged.

        Args:
            student_id: Student identifier.
            from_class_id: Source section.
            to_class_id: Destination section.
            performed_by: User or process performing the transfer.

        Returns:
            The new active enrollment in the destination section.

        Raises:
            ClassNotFoundError: If either class is not found.
            NotEnrolledError: If the student is not actively enrolled in the source.
        """
        from_class = await self._get_class(from_class_id)
        to_class = await self._get_class(to_class_id)

        source = await self._get_enrollment(from_class_id, student_id)
        if not source or source.status != ENROLLED:
            raise NotEnrolledError(
                f"Student {student_id} is not enrolled in class {from_class_id}"
            )

        source.status = TRANSFERRED
        source.withdrawn_at = utc_now()
        from_class.current_enrollment = max(0, (from_class.current_enrollment or 0) - 1)

        self._audit(student_id, from_class_id, "transferred_out", performed_by)

        existing = await self._get_enrollment(to_class_id, student_id)
        if existing and existing.status == ENROLLED:
            existing.prerequisite_exempt = existing.prerequisite_exempt or source.prerequisite_exempt
            existing.policy_exempt = existing.policy_exempt or source.policy_exempt
            await self.db.flush()
            logger.warning(
                "Student already enrolled in destination, source closed only: "
                "student=%s, from=%s, to=%s",
                student_id,
                from_class_id,
                to_class_id,
            )
            return existing

        destination = self._activate(existing, student_id, to_class_id)
        destination.prerequisite_exempt = source.prerequisite_exempt
        destination.policy_exempt = source.policy_exempt
        to_class.current_enrollment = (to_class.current_enrollment or 0) + 1

        self._audit(student_id, to_class_id, "transferred_in", performed_by)
        await self.db.flush()

        logger.info(
            "Transferred student: student=%s, from=%s, to=%s, by=%s",
            student_id,
            from_class_id,
            to_class_id,
            performed_by,
        )
        return destination

    async def increase_capacity(
        self,
        class_id: str,
        amount: int | None = None,
    ) -> int:
        """Raise a class's capacity.

        The new capacity is the old one plus amount, and never below the
        current enrollment, so a capacity violation is always cleared.

        Args:
            class_id: Class identifier.
            amount: Seats to add; None raises capacity to current enrollment.

        Returns:
            The new capacity.

        Raises:
            ClassNotFoundError: If class not found.
        """
        class_ = await self._get_class(class_id)
        old_capacity = class_.capacity or 0
        class_.capacity = max(old_capacity + (amount or 0), class_.current_enrollment or 0)
        await self.db.flush()

        logger.info(
            "Increased capacity: class=%s, %d -> %d",
            class_id,
            old_capacity,
            class_.capacity,
        )
        return class_.capacity

    async def mark_policy_exempt(
        self,
        class_id: str,
        student_ids: list[str],
    ) -> int:
        """Flag active enrollments of the given students as policy-exempt.

        Args:
            class_id: Class identifier.
            student_ids: Students to exempt.

        Returns:
            Number of enrollments updated.
        """
        if not student_ids:
            return 0

        result = await self.db.execute(
            update(Enrollment)
            .where(
                Enrollment.class_id == class_id,
                Enrollment.student_id.in_(student_ids),
                Enrollment.status == ENROLLED,
            )
            .values(policy_exempt=True)
        )
        updated = result.rowcount or 0

        logger.info(
            "Policy exemption applied: class=%s, students=%d, updated=%d",
            class_id,
            len(student_ids),
            updated,
        )
        return updated

    async def _get_class(self, class_id: str) -> Class:
        """Get class by ID.

        Args:
            class_id: Class identifier.

        Returns:
            Class model instance.

        Raises:
            ClassNotFoundError: If not found.
        """
        query = select(Class).where(Class.id == class_id)
        result = await self.db.execute(query)
        class_ = result.scalar_one_or_none()

        if not class_:
            raise ClassNotFoundError(f"Class {class_id} not found")

        return class_

    async def _get_enrollment(
        self,
        class_id: str,
        student_id: str,
    ) -> Enrollment | None:
        """Get the most recent enrollment record for a student in a class.

        Args:
            class_id: Class identifier.
            student_id: Student identifier.

        Returns:
            Enrollment if found, None otherwise.
        """
        query = (
            select(Enrollment)
            .where(
                Enrollment.class_id == class_id,
                Enrollment.student_id == student_id,
            )
            .order_by(Enrollment.enrolled_at.desc())
            .limit(1)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    def _activate(
        self,
        enrollment: Enrollment | None,
        student_id: str,
        class_id: str,
    ) -> Enrollment:
        """Reactivate an inactive enrollment or stage a new one."""
        if enrollment is not None:
            enrollment.status = ENROLLED
            enrollment.enrolled_at = utc_now()
            enrollment.withdrawn_at = None
            return enrollment

        enrollment = Enrollment(
            student_id=student_id,
            class_id=class_id,
            status=ENROLLED,
            enrolled_at=utc_now(),
        )
        self.db.add(enrollment)
        return enrollment

    def _audit(
        self,
        student_id: str,
        class_id: str,
        action: str,
        performed_by: str | None,
    ) -> None:
        """Stage an enrollment audit trail entry."""
        self.db.add(
            EnrollmentAuditLog(
                student_id=student_id,
                class_id=class_id,
                action=action,
                performed_by=performed_by,
                timestamp=utc_now(),
            )
        )
