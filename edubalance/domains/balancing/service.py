# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment balancing service.

This module provides the EnrollmentBalancingService class for:
- Generating balancing plans across sibling sections
- Persisting plans as pending operations
- Approving and executing operations
- Reading balancing history per department

Plan generation pairs over-enrolled sections with under-enrolled ones in
input order. Each student appears in at most one operation of a plan, and
no operation moves more students than the source's remaining surplus or
the destination's remaining headroom.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from uuid import uuid4

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from edubalance.core.config import Settings, get_settings
from edubalance.domains.balancing.distribution import (
    calculate_feasibility_score,
    calculate_improvement_score,
    calculate_operation_impact,
    calculate_optimal_distribution,
)
from edubalance.domains.balancing.eligibility import TransferEligibilityFilter
from edubalance.domains.balancing.reader import SectionBalanceReader
from edubalance.domains.enrollment import (
    EnrollmentService,
    EnrollmentServiceError,
    NotEnrolledError,
)
from edubalance.infrastructure.database.connection import StoreAccessError
from edubalance.infrastructure.database.models.tenant import BalancingOperationRecord, Class
from edubalance.models.balancing import (
    BalancingOperation,
    BalancingPlan,
    ExpectedOutcome,
    OperationStatus,
    OperationType,
    SectionBalance,
)
from edubalance.utils.datetime import epoch_millis, utc_now

logger = logging.getLogger(__name__)


class BalancingServiceError(Exception):
    """Base exception for balancing service errors."""

    pass


class OperationNotFoundError(BalancingServiceError):
    """Raised when a balancing operation is not found."""

    pass


class InvalidOperationStateError(BalancingServiceError):
    """Raised when an operation is not in a state that allows the action."""

    pass


class EnrollmentBalancingService:
    """Service for balancing enrollment across sections.

    Attributes:
        db: Async database session.
        settings: Application settings.
        reader: Section balance reader.
        eligibility: Transfer eligibility filter.
        enrollment_service: Applies transfers on execution.
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings | None = None,
        reader: SectionBalanceReader | None = None,
        eligibility: TransferEligibilityFilter | None = None,
        enrollment_service: EnrollmentService | None = None,
    ) -> None:
        """Initialize balancing service.

        Args:
            db: Async database session for the institution database.
            settings: Application settings, defaults to get_settings().
            reader: Section balance reader override.
            eligibility: Eligibility filter override.
            enrollment_service: Enrollment side-effect service override.
        """
        self.db = db
        self.settings = settings or get_settings()
        balancing = self.settings.balancing
        self.reader = reader or SectionBalanceReader(db, balancing.ideal_utilization)
        self.eligibility = eligibility or TransferEligibilityFilter(
            db, balancing.candidate_multiplier
        )
        self.enrollment_service = enrollment_service or EnrollmentService(db)

    async def generate_balancing_plan(
        self,
        section_ids: Iterable[str],
        target_utilization: float | None = None,
    ) -> BalancingPlan:
        """Generate a plan moving students from over- to under-enrolled sections.

        Args:
            section_ids: Sibling sections to balance.
            target_utilization: Desired utilization percentage, defaults to
                the configured target.

        Returns:
            An immutable BalancingPlan.

        Raises:
            ValueError: If no sections are given or the target is not positive.
            StoreAccessError: If the section figures cannot be read.
        """
        balancing = self.settings.balancing
        if target_utilization is None:
            target_utilization = balancing.default_target_utilization
        if target_utilization <= 0:
            raise ValueError("Target utilization must be positive")

        current = await self.reader.get_section_balances(section_ids)
        targets = calculate_optimal_distribution(
            current,
            target_utilization,
            balancing.ideal_utilization,
        )
        operations = await self._generate_operations(current, targets)

        plan = BalancingPlan(
            operations=operations,
            expected_outcome=ExpectedOutcome(
                before_balance=current,
                after_balance=targets,
                improvement_score=calculate_improvement_score(current, targets),
            ),
            feasibility_score=calculate_feasibility_score(operations),
            estimated_time_to_complete=len(operations) * balancing.minutes_per_operation,
        )

        logger.info(
            "Generated balancing plan: sections=%d, operations=%d, students=%d, improvement=%.1f",
            len(current),
            len(operations),
            sum(len(op.student_ids) for op in operations),
            plan.expected_outcome.improvement_score,
        )
        return plan

    async def save_balancing_plan(
        self,
        plan: BalancingPlan,
        department_id: str,
    ) -> list[str]:
        """Persist a plan's operations as pending records.

        Args:
            plan: Plan to persist.
            department_id: Department owning the sections.

        Returns:
            Saved operation ids, in plan order.

        Raises:
            StoreAccessError: If the operations cannot be written.
        """
        for operation in plan.operations:
            self.db.add(
                BalancingOperationRecord(
                    id=operation.id,
                    department_id=department_id,
                    operation_type=operation.type.value,
                    from_section_id=operation.from_section_id,
                    to_section_id=operation.to_section_id,
                    student_ids=list(operation.student_ids),
                    reason=operation.reason,
                    estimated_impact=operation.estimated_impact,
                    status=OperationStatus.PENDING.value,
                    created_at=operation.created_at,
                )
            )

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreAccessError("Failed to save balancing plan", e) from e

        logger.info(
            "Saved balancing plan: department=%s, operations=%d",
            department_id,
            len(plan.operations),
        )
        return [operation.id for operation in plan.operations]

    async def approve_balancing_operation(self, operation_id: str) -> BalancingOperation:
        """Approve a pending operation.

        Args:
            operation_id: Operation identifier.

        Returns:
            The approved operation.

        Raises:
            OperationNotFoundError: If the operation does not exist.
            InvalidOperationStateError: If the operation is not pending.
            StoreAccessError: If the approval cannot be read or saved.
        """
        try:
            record = await self._get_record(operation_id)
        except SQLAlchemyError as e:
            raise StoreAccessError("Failed to fetch balancing operation", e) from e

        if not record:
            raise OperationNotFoundError(f"Balancing operation {operation_id} not found")

        if record.status != OperationStatus.PENDING.value:
            raise InvalidOperationStateError(
                f"Cannot approve operation in status: {record.status}"
            )

        query = (
            update(BalancingOperationRecord)
            .where(
                BalancingOperationRecord.id == operation_id,
                BalancingOperationRecord.status == OperationStatus.PENDING.value,
            )
            .values(status=OperationStatus.APPROVED.value)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.db.execute(query)
            if not result.rowcount:
                await self.db.rollback()
                raise InvalidOperationStateError(
                    f"Balancing operation {operation_id} was already approved"
                )
            record.status = OperationStatus.APPROVED.value
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreAccessError("Failed to approve balancing operation", e) from e

        logger.info("Approved balancing operation: %s", operation_id)
        return self._to_operation(record)

    async def execute_balancing_operation(self, operation_id: str) -> bool:
        """Apply a persisted operation's transfers as one transaction.

        Students no longer enrolled in the source section are skipped.
        On any failure the transfers are rolled back and the operation is
        marked failed with the reason.

        Args:
            operation_id: Operation identifier.

        Returns:
            True if the operation completed, False otherwise.
        """
        try:
            record = await self._get_record(operation_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load balancing operation %s: %s", operation_id, e)
            return False

        if not record:
            logger.warning("Balancing operation not found: %s", operation_id)
            return False

        if record.status not in (OperationStatus.PENDING.value, OperationStatus.APPROVED.value):
            logger.warning(
                "Balancing operation %s not executable in status: %s",
                operation_id,
                record.status,
            )
            return False

        from_section_id = record.from_section_id
        to_section_id = record.to_section_id
        student_ids = list(record.student_ids or [])
        performed_by = f"balancing:{operation_id}"

        try:
            moved = await self._transfer_students(
                student_ids, from_section_id, to_section_id, performed_by
            )
            record.status = OperationStatus.COMPLETED.value
            record.completed_at = utc_now()
            record.failure_reason = None
            await self.db.commit()
        except (EnrollmentServiceError, SQLAlchemyError) as e:
            logger.error("Balancing operation %s failed: %s", operation_id, e)
            await self.db.rollback()
            await self._mark_failed(operation_id, str(e))
            return False

        logger.info(
            "Executed balancing operation: id=%s, from=%s, to=%s, moved=%d/%d",
            operation_id,
            from_section_id,
            to_section_id,
            moved,
            len(student_ids),
        )
        return True

    async def get_balancing_history(
        self,
        department_id: str,
        limit: int | None = None,
    ) -> list[BalancingOperation]:
        """Get recent balancing operations for a department, newest first.

        Args:
            department_id: Department identifier.
            limit: Maximum operations, defaults to the configured limit.

        Returns:
            Operations with source/destination section names attached.

        Raises:
            StoreAccessError: If history cannot be read.
        """
        from_section = aliased(Class)
        to_section = aliased(Class)

        query = (
            select(BalancingOperationRecord, from_section.name, to_section.name)
            .outerjoin(from_section, from_section.id == BalancingOperationRecord.from_section_id)
            .outerjoin(to_section, to_section.id == BalancingOperationRecord.to_section_id)
            .where(BalancingOperationRecord.department_id == department_id)
            .order_by(BalancingOperationRecord.created_at.desc())
            .limit(limit or self.settings.balancing.history_limit)
        )

        try:
            result = await self.db.execute(query)
            rows = result.all()
        except SQLAlchemyError as e:
            raise StoreAccessError("Failed to fetch balancing history", e) from e

        return [
            self._to_operation(record, from_name, to_name)
            for record, from_name, to_name in rows
        ]

    async def _generate_operations(
        self,
        current: list[SectionBalance],
        targets: list[SectionBalance],
    ) -> list[BalancingOperation]:
        """Greedily pair surplus sections with headroom sections."""
        target_by_id = {b.section_id: b.target_enrollment for b in targets}

        over_enrolled = [
            b for b in current if b.current_enrollment > target_by_id[b.section_id]
        ]
        under_enrolled = [
            b for b in current if b.current_enrollment < target_by_id[b.section_id]
        ]

        headroom = {
            b.section_id: target_by_id[b.section_id] - b.current_enrollment
            for b in under_enrolled
        }
        projected = {b.section_id: b.current_enrollment for b in current}
        assigned: set[str] = set()
        operations: list[BalancingOperation] = []

        for source in over_enrolled:
            surplus = source.current_enrollment - target_by_id[source.section_id]

            for destination in under_enrolled:
                if surplus <= 0:
                    break

                to_move = min(surplus, headroom[destination.section_id])
                if to_move <= 0:
                    continue

                eligible = await self.eligibility.get_eligible_students(
                    source.section_id,
                    destination.section_id,
                    to_move,
                    exclude=assigned,
                )
                student_ids = eligible[:to_move]
                if not student_ids:
                    continue

                moved = len(student_ids)
                impact = calculate_operation_impact(
                    projected[source.section_id],
                    source.capacity,
                    projected[destination.section_id],
                    destination.capacity,
                    moved,
                )
                operations.append(
                    BalancingOperation(
                        id=self._new_operation_id(),
                        type=OperationType.REDISTRIBUTE,
                        from_section_id=source.section_id,
                        to_section_id=destination.section_id,
                        student_ids=student_ids,
                        reason=(
                            f"Balance enrollment: move {moved} students from over-enrolled "
                            f"section {source.section_name} to under-enrolled section "
                            f"{destination.section_name}"
                        ),
                        estimated_impact=f"Improve utilization balance by {impact:.1f}%",
                        from_section_name=source.section_name,
                        to_section_name=destination.section_name,
                    )
                )

                assigned.update(student_ids)
                projected[source.section_id] -= moved
                projected[destination.section_id] += moved
                headroom[destination.section_id] -= moved
                surplus -= moved

        return operations

    async def _transfer_students(
        self,
        student_ids: list[str],
        from_section_id: str,
        to_section_id: str,
        performed_by: str,
    ) -> int:
        """Transfer each student, returning how many were moved."""
        moved = 0
        for student_id in student_ids:
            try:
                await self.enrollment_service.transfer_student(
                    student_id,
                    from_section_id,
                    to_section_id,
                    performed_by=performed_by,
                )
            except NotEnrolledError:
                logger.warning(
                    "Skipping student no longer in source section: student=%s, section=%s",
                    student_id,
                    from_section_id,
                )
                continue
            moved += 1
        return moved

    async def _mark_failed(self, operation_id: str, reason: str) -> None:
        """Record a failed execution in a fresh transaction."""
        try:
            record = await self._get_record(operation_id)
            if record:
                record.status = OperationStatus.FAILED.value
                record.failure_reason = reason
                await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to mark balancing operation %s failed: %s", operation_id, e)

    async def _get_record(self, operation_id: str) -> BalancingOperationRecord | None:
        query = select(BalancingOperationRecord).where(
            BalancingOperationRecord.id == operation_id
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    @staticmethod
    def _new_operation_id() -> str:
        return f"balance_{epoch_millis()}_{uuid4().hex[:9]}"

    @staticmethod
    def _to_operation(
        record: BalancingOperationRecord,
        from_section_name: str | None = None,
        to_section_name: str | None = None,
    ) -> BalancingOperation:
        """Convert a persisted record to an operation DTO."""
        return BalancingOperation(
            id=record.id,
            type=OperationType(record.operation_type),
            from_section_id=record.from_section_id,
            to_section_id=record.to_section_id,
            student_ids=list(record.student_ids or []),
            reason=record.reason,
            estimated_impact=record.estimated_impact,
            status=OperationStatus(record.status),
            created_at=record.created_at,
            completed_at=record.completed_at,
            from_section_name=from_section_name,
            to_section_name=to_section_name,
        )
