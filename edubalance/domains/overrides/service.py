# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment override service.

This module provides the EnrollmentOverrideService class for:
- Requesting overrides of capacity, deadline or prerequisite rules
- Approving overrides and executing the forced enrollment
- Denying overrides
- Listing the overrides a role may issue

Approval is persisted before execution. The forced enrollment then runs
in its own transaction, and its outcome is recorded as executed or
execution_failed, so an approved override never silently stays approved
after a failed execution.
"""

import logging
from typing import Any
from uuid import uuid4

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from edubalance.domains.enrollment import EnrollmentService, EnrollmentServiceError
from edubalance.infrastructure.database.connection import StoreAccessError
from edubalance.infrastructure.database.models.tenant import EnrollmentOverrideRecord
from edubalance.models.override import (
    ApprovalLevel,
    EnrollmentOverride,
    OverrideCapability,
    OverrideRequest,
    OverrideStatus,
    OverrideType,
)
from edubalance.utils.datetime import is_expired, utc_now

logger = logging.getLogger(__name__)

INSTITUTION_ADMIN_ROLE = "institution_admin"

INSTITUTION_ADMIN_CAPABILITIES = [
    OverrideCapability(
        type=OverrideType.ENROLLMENT_OVERRIDE,
        description="Override enrollment restrictions for specific students",
        requires_approval=False,
        approval_level=ApprovalLevel.INSTITUTION,
    ),
    OverrideCapability(
        type=OverrideType.PREREQUISITE_OVERRIDE,
        description="Allow enrollment without meeting prerequisites",
        requires_approval=True,
        approval_level=ApprovalLevel.DEPARTMENT,
    ),
    OverrideCapability(
        type=OverrideType.CAPACITY_OVERRIDE,
        description="Exceed class capacity limits",
        requires_approval=False,
        approval_level=ApprovalLevel.INSTITUTION,
        max_overrides=5,
        conditions=["Must provide justification", "Limited to 5 students per class"],
    ),
    OverrideCapability(
        type=OverrideType.DEADLINE_OVERRIDE,
        description="Allow enrollment after deadlines",
        requires_approval=False,
        approval_level=ApprovalLevel.INSTITUTION,
    ),
]


class OverrideServiceError(Exception):
    """Base exception for override service errors."""

    pass


class OverrideNotFoundError(OverrideServiceError):
    """Raised when override is not found."""

    pass


class InvalidOverrideStateError(OverrideServiceError):
    """Raised when override is not in a state that allows the action."""

    pass


class OverrideExpiredError(OverrideServiceError):
    """Raised when acting on an override past its expiry."""

    pass


class EnrollmentOverrideService:
    """Service managing the override request/approval workflow.

    Attributes:
        db: Async database session.
        enrollment_service: Executes approved overrides.
    """

    def __init__(
        self,
        db: AsyncSession,
        enrollment_service: EnrollmentService | None = None,
    ) -> None:
        """Initialize override service.

        Args:
            db: Async database session for the institution database.
            enrollment_service: Enrollment side-effect service override.
        """
        self.db = db
        self.enrollment_service = enrollment_service or EnrollmentService(db)

    async def request_override(self, request: OverrideRequest) -> str:
        """Create a pending override.

        Args:
            request: Override request.

        Returns:
            The new override id.

        Raises:
            StoreAccessError: If the override cannot be saved.
        """
        override_id = str(uuid4())
        self.db.add(
            EnrollmentOverrideRecord(
                id=override_id,
                student_id=request.student_id,
                class_id=request.class_id,
                override_type=request.override_type.value,
                reason=request.reason,
                requested_by=request.requested_by,
                status=OverrideStatus.PENDING.value,
                requested_at=utc_now(),
                expires_at=request.expires_at,
                conditions=request.conditions,
            )
        )

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreAccessError("Failed to save override request", e) from e

        logger.info(
            "Override requested: id=%s, type=%s, student=%s, class=%s, by=%s",
            override_id,
            request.override_type.value,
            request.student_id,
            request.class_id,
            request.requested_by,
        )
        return override_id

    async def get_override(self, override_id: str) -> EnrollmentOverride:
        """Get an override, expiring it first if its time has passed.

        Raises:
            OverrideNotFoundError: If the override does not exist.
            StoreAccessError: If the store cannot be read or updated.
        """
        record = await self._get_record(override_id)
        if self._expire_if_due(record):
            await self._commit("Failed to expire override")
        return self._to_dto(record)

    async def list_overrides(
        self,
        status: OverrideStatus | None = None,
        class_id: str | None = None,
    ) -> list[EnrollmentOverride]:
        """List overrides, newest first.

        Args:
            status: Only overrides in this status (after lazy expiry).
            class_id: Only overrides for this class.

        Returns:
            Matching overrides.

        Raises:
            StoreAccessError: If the store cannot be read or updated.
        """
        query = select(EnrollmentOverrideRecord).order_by(
            EnrollmentOverrideRecord.requested_at.desc()
        )
        if class_id:
            query = query.where(EnrollmentOverrideRecord.class_id == class_id)
        if status == OverrideStatus.EXPIRED:
            # Pending rows may still expire on read
            query = query.where(
                EnrollmentOverrideRecord.status.in_(
                    [OverrideStatus.EXPIRED.value, OverrideStatus.PENDING.value]
                )
            )
        elif status:
            query = query.where(EnrollmentOverrideRecord.status == status.value)

        try:
            result = await self.db.execute(query)
            records = list(result.scalars().all())
        except SQLAlchemyError as e:
            raise StoreAccessError("Failed to list overrides", e) from e

        expired = [record for record in records if self._expire_if_due(record)]
        if expired:
            await self._commit("Failed to expire overrides")

        overrides = [self._to_dto(record) for record in records]
        if status:
            overrides = [o for o in overrides if o.status == status]
        return overrides

    async def approve_override(
        self,
        override_id: str,
        approved_by: str,
        conditions: list[str] | None = None,
    ) -> EnrollmentOverride:
        """Approve a pending override and execute it.

        The forced enrollment runs after the approval is committed. Its
        outcome moves the override to executed or execution_failed. Of two
        concurrent approvals only the one that moves the row out of pending
        executes; the other is rejected.

        Args:
            override_id: Override identifier.
            approved_by: Approver identifier.
            conditions: Conditions attached to the approval.

        Returns:
            The override after execution.

        Raises:
            OverrideNotFoundError: If the override does not exist.
            OverrideExpiredError: If the override expired.
            InvalidOverrideStateError: If the override is not pending.
            StoreAccessError: If the approval cannot be saved.
        """
        record = await self._get_pending_record(override_id)

        values = {
            "status": OverrideStatus.APPROVED.value,
            "approved_by": approved_by,
            "approved_at": utc_now(),
        }
        if conditions is not None:
            values["conditions"] = conditions
        await self._claim_pending(record, values)
        await self._commit("Failed to approve override")

        logger.info("Override approved: id=%s, by=%s", override_id, approved_by)
        return await self._execute(record)

    async def retry_override_execution(self, override_id: str) -> EnrollmentOverride:
        """Re-run the forced enrollment of an approved override that did not execute.

        Accepts overrides in execution_failed, and approved overrides that
        never reached executed (the failure itself could not be recorded).

        Raises:
            OverrideNotFoundError: If the override does not exist.
            InvalidOverrideStateError: If the override is not retryable.
            StoreAccessError: If the store cannot be read or updated.
        """
        record = await self._get_record(override_id)
        interrupted = (
            record.status == OverrideStatus.APPROVED.value and record.executed_at is None
        )
        if record.status != OverrideStatus.EXECUTION_FAILED.value and not interrupted:
            raise InvalidOverrideStateError(
                f"Cannot retry override in status: {record.status}"
            )
        return await self._execute(record)

    async def deny_override(
        self,
        override_id: str,
        denied_by: str,
        reason: str | None = None,
    ) -> EnrollmentOverride:
        """Deny a pending override. No enrollment change is made.

        Args:
            override_id: Override identifier.
            denied_by: Denier identifier.
            reason: Optional denial reason, kept as notes.

        Returns:
            The denied override.

        Raises:
            OverrideNotFoundError: If the override does not exist.
            OverrideExpiredError: If the override expired.
            InvalidOverrideStateError: If the override is not pending.
            StoreAccessError: If the denial cannot be saved.
        """
        record = await self._get_pending_record(override_id)

        await self._claim_pending(
            record,
            {
                "status": OverrideStatus.DENIED.value,
                "approved_by": denied_by,
                "approved_at": utc_now(),
                "notes": reason,
            },
        )
        await self._commit("Failed to deny override")

        logger.info("Override denied: id=%s, by=%s", override_id, denied_by)
        return self._to_dto(record)

    async def get_override_capabilities(
        self,
        role: str,
        institution_id: str,
    ) -> list[OverrideCapability]:
        """Overrides a role may issue within an institution."""
        if role != INSTITUTION_ADMIN_ROLE:
            return []
        return list(INSTITUTION_ADMIN_CAPABILITIES)

    async def _execute(self, record: EnrollmentOverrideRecord) -> EnrollmentOverride:
        """Force-enroll for an approved override and record the outcome."""
        override_id = record.id
        try:
            await self.enrollment_service.force_enroll(
                record.student_id,
                record.class_id,
                performed_by=record.approved_by,
                override_id=override_id,
                prerequisite_exempt=(
                    record.override_type == OverrideType.PREREQUISITE_OVERRIDE.value
                ),
            )
            record.status = OverrideStatus.EXECUTED.value
            record.executed_at = utc_now()
            record.execution_error = None
            await self.db.commit()
        except (EnrollmentServiceError, SQLAlchemyError) as e:
            logger.error("Override execution failed: id=%s, error=%s", override_id, e)
            await self.db.rollback()
            record = await self._get_record(override_id)
            record.status = OverrideStatus.EXECUTION_FAILED.value
            record.execution_error = str(e)
            await self._commit("Failed to record override execution failure")
            return self._to_dto(record)

        logger.info("Override executed: id=%s", override_id)
        return self._to_dto(record)

    async def _get_pending_record(self, override_id: str) -> EnrollmentOverrideRecord:
        """Get an override that can still be approved or denied."""
        record = await self._get_record(override_id)

        if self._expire_if_due(record):
            await self._commit("Failed to expire override")
            raise OverrideExpiredError(f"Override {override_id} has expired")

        if record.status != OverrideStatus.PENDING.value:
            raise InvalidOverrideStateError(
                f"Cannot change override in status: {record.status}"
            )
        return record

    async def _claim_pending(
        self,
        record: EnrollmentOverrideRecord,
        values: dict[str, Any],
    ) -> None:
        """Move an override out of pending, only if it is still pending in the store.

        Raises:
            InvalidOverrideStateError: If another session decided it first.
            StoreAccessError: If the update fails.
        """
        query = (
            update(EnrollmentOverrideRecord)
            .where(
                EnrollmentOverrideRecord.id == record.id,
                EnrollmentOverrideRecord.status == OverrideStatus.PENDING.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreAccessError("Failed to update override", e) from e

        if not result.rowcount:
            await self.db.rollback()
            raise InvalidOverrideStateError(f"Override {record.id} was already decided")

        for key, value in values.items():
            setattr(record, key, value)

    async def _commit(self, message: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreAccessError(message, e) from e

    async def _get_record(self, override_id: str) -> EnrollmentOverrideRecord:
        """Get override by ID.

        Raises:
            OverrideNotFoundError: If not found.
            StoreAccessError: If the store cannot be read.
        """
        query = select(EnrollmentOverrideRecord).where(
            EnrollmentOverrideRecord.id == override_id
        )
        try:
            result = await self.db.execute(query)
            record = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreAccessError("Failed to fetch override", e) from e

        if not record:
            raise OverrideNotFoundError(f"Override {override_id} not found")

        return record

    @staticmethod
    def _expire_if_due(record: EnrollmentOverrideRecord) -> bool:
        """Move a pending override past its expiry to expired."""
        if record.status == OverrideStatus.PENDING.value and is_expired(record.expires_at):
            record.status = OverrideStatus.EXPIRED.value
            logger.info("Override expired: id=%s", record.id)
            return True
        return False

    @staticmethod
    def _to_dto(record: EnrollmentOverrideRecord) -> EnrollmentOverride:
        return EnrollmentOverride(
            id=record.id,
            student_id=record.student_id,
            class_id=record.class_id,
            override_type=OverrideType(record.override_type),
            reason=record.reason,
            requested_by=record.requested_by,
            status=OverrideStatus(record.status),
            requested_at=record.requested_at,
            approved_by=record.approved_by,
            approved_at=record.approved_at,
            expires_at=record.expires_at,
            conditions=record.conditions,
            notes=record.notes,
            executed_at=record.executed_at,
            execution_error=record.execution_error,
        )
