# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the conflict resolution service."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from edubalance.domains.conflicts.resolution import (
    ConflictResolutionError,
    ConflictResolutionService,
)
from edubalance.domains.enrollment import ClassNotFoundError
from edubalance.infrastructure.database.models.tenant import ConflictResolutionRecord
from edubalance.models.conflict import ConflictResolution, ResolutionType


@pytest.fixture
def mock_enrollment_service():
    """Create mock enrollment service."""
    service = MagicMock()
    service.increase_capacity = AsyncMock(return_value=40)
    service.transfer_student = AsyncMock()
    service.force_enroll = AsyncMock()
    service.mark_policy_exempt = AsyncMock(return_value=2)
    return service


@pytest.fixture
def resolution_service(mock_db, mock_enrollment_service):
    """Create resolution service with mocked collaborators."""
    return ConflictResolutionService(db=mock_db, enrollment_service=mock_enrollment_service)


def _resolution(resolution_type: ResolutionType, **kwargs) -> ConflictResolution:
    return ConflictResolution(
        conflict_id=kwargs.pop("conflict_id", "capacity-violation-cls-1"),
        resolution_type=resolution_type,
        description="Resolve over-enrollment",
        action_taken="Adjusted enrollment",
        resolved_by="admin-1",
        **kwargs,
    )


class TestResolveConflict:
    """Tests for resolve_conflict."""

    @pytest.mark.asyncio
    async def test_capacity_increase_uses_class_from_conflict_id(
        self, resolution_service, mock_db, mock_enrollment_service
    ):
        resolution = _resolution(ResolutionType.CAPACITY_INCREASE, capacity_increase=10)

        await resolution_service.resolve_conflict("capacity-violation-cls-1", resolution)

        mock_enrollment_service.increase_capacity.assert_awaited_once_with("cls-1", 10)
        record = mock_db.add.call_args[0][0]
        assert isinstance(record, ConflictResolutionRecord)
        assert record.conflict_id == "capacity-violation-cls-1"
        assert record.resolution_type == "capacity_increase"
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_explicit_class_id_wins(self, resolution_service, mock_enrollment_service):
        resolution = _resolution(
            ResolutionType.CAPACITY_INCREASE, class_id="cls-9", capacity_increase=2
        )

        await resolution_service.resolve_conflict("capacity-violation-cls-1", resolution)

        mock_enrollment_service.increase_capacity.assert_awaited_once_with("cls-9", 2)

    @pytest.mark.asyncio
    async def test_student_transfer(self, resolution_service, mock_enrollment_service):
        resolution = _resolution(
            ResolutionType.STUDENT_TRANSFER,
            affected_students=["s1", "s2"],
            target_class_id="cls-2",
        )

        await resolution_service.resolve_conflict("capacity-violation-cls-1", resolution)

        assert mock_enrollment_service.transfer_student.await_count == 2
        mock_enrollment_service.transfer_student.assert_any_await(
            "s1", "cls-1", "cls-2", performed_by="admin-1"
        )

    @pytest.mark.asyncio
    async def test_student_transfer_requires_target(
        self, resolution_service, mock_db, mock_enrollment_service
    ):
        resolution = _resolution(ResolutionType.STUDENT_TRANSFER, affected_students=["s1"])

        with pytest.raises(ConflictResolutionError):
            await resolution_service.resolve_conflict("capacity-violation-cls-1", resolution)

        mock_enrollment_service.transfer_student.assert_not_called()
        mock_db.rollback.assert_called_once()
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_manual_override_force_enrolls(self, resolution_service, mock_enrollment_service):
        resolution = _resolution(
            ResolutionType.MANUAL_OVERRIDE, affected_students=["s1"], class_id="cls-3"
        )

        await resolution_service.resolve_conflict("schedule-x", resolution)

        mock_enrollment_service.force_enroll.assert_awaited_once_with(
            "s1", "cls-3", performed_by="admin-1"
        )

    @pytest.mark.asyncio
    async def test_policy_exception(self, resolution_service, mock_enrollment_service):
        resolution = _resolution(ResolutionType.POLICY_EXCEPTION, affected_students=["s1", "s2"])

        await resolution_service.resolve_conflict("capacity-violation-cls-1", resolution)

        mock_enrollment_service.mark_policy_exempt.assert_awaited_once_with("cls-1", ["s1", "s2"])

    @pytest.mark.asyncio
    async def test_dismiss_is_noop(self, resolution_service, mock_db, mock_enrollment_service):
        resolution = _resolution(ResolutionType.DISMISS, conflict_id="suspicious-activity-s1")

        await resolution_service.resolve_conflict("suspicious-activity-s1", resolution)

        mock_db.add.assert_called_once()
        mock_db.commit.assert_called_once()
        mock_enrollment_service.increase_capacity.assert_not_called()
        mock_enrollment_service.force_enroll.assert_not_called()
        mock_enrollment_service.transfer_student.assert_not_called()
        mock_enrollment_service.mark_policy_exempt.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_class_rejected(self, resolution_service, mock_db):
        resolution = _resolution(
            ResolutionType.MANUAL_OVERRIDE,
            conflict_id="suspicious-activity-s1",
            affected_students=["s1"],
        )

        with pytest.raises(ConflictResolutionError):
            await resolution_service.resolve_conflict("suspicious-activity-s1", resolution)

        mock_db.rollback.assert_called_once()

    @pytest.mark.asyncio
    async def test_action_failure_rolls_back_record(
        self, resolution_service, mock_db, mock_enrollment_service
    ):
        mock_enrollment_service.increase_capacity.side_effect = ClassNotFoundError("gone")
        resolution = _resolution(ResolutionType.CAPACITY_INCREASE, capacity_increase=5)

        with pytest.raises(ConflictResolutionError, match="Failed to resolve conflict"):
            await resolution_service.resolve_conflict("capacity-violation-cls-1", resolution)

        mock_db.rollback.assert_called_once()
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_commit_failure_raises(self, resolution_service, mock_db):
        mock_db.commit.side_effect = SQLAlchemyError("deadlock")
        resolution = _resolution(ResolutionType.DISMISS)

        with pytest.raises(ConflictResolutionError):
            await resolution_service.resolve_conflict("capacity-violation-cls-1", resolution)

        mock_db.rollback.assert_called_once()
