# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for Enrollment service."""

from datetime import datetime, timezone
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from conftest import scalar_result
from edubalance.domains.enrollment.service import (
    ClassNotFoundError,
    EnrollmentService,
    NotEnrolledError,
)
from edubalance.infrastructure.database.models.tenant import Enrollment, EnrollmentAuditLog


@pytest.fixture
def enrollment_service(mock_db):
    """Create enrollment service with mock database."""
    return EnrollmentService(db=mock_db)


def _class(capacity: int = 30, current: int = 20):
    cls = MagicMock()
    cls.id = str(uuid4())
    cls.name = "Class 1A"
    cls.capacity = capacity
    cls.current_enrollment = current
    return cls


def _enrollment(class_id: str, student_id: str, status: str = "enrolled"):
    enrollment = MagicMock()
    enrollment.id = str(uuid4())
    enrollment.class_id = class_id
    enrollment.student_id = student_id
    enrollment.status = status
    enrollment.enrolled_at = datetime.now(timezone.utc)
    enrollment.withdrawn_at = None
    enrollment.prerequisite_exempt = False
    enrollment.policy_exempt = False
    enrollment.override_id = None
    return enrollment


def _added(mock_db, model):
    return [c.args[0] for c in mock_db.add.call_args_list if isinstance(c.args[0], model)]


class TestForceEnroll:
    """Tests for force_enroll."""

    @pytest.mark.asyncio
    async def test_new_enrollment_beyond_capacity(self, enrollment_service, mock_db):
        cls = _class(capacity=30, current=30)
        mock_db.execute.side_effect = [scalar_result(cls), scalar_result(None)]

        enrollment = await enrollment_service.force_enroll(
            "stu-1", cls.id, performed_by="admin-1", override_id="ovr-1"
        )

        assert isinstance(enrollment, Enrollment)
        assert enrollment.status == "enrolled"
        assert enrollment.override_id == "ovr-1"
        assert cls.current_enrollment == 31
        audits = _added(mock_db, EnrollmentAuditLog)
        assert [a.action for a in audits] == ["override_enrolled"]
        mock_db.flush.assert_called_once()
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_already_enrolled_not_counted_twice(self, enrollment_service, mock_db):
        cls = _class(current=20)
        existing = _enrollment(cls.id, "stu-1")
        mock_db.execute.side_effect = [scalar_result(cls), scalar_result(existing)]

        result = await enrollment_service.force_enroll(
            "stu-1", cls.id, prerequisite_exempt=True
        )

        assert result is existing
        assert existing.prerequisite_exempt is True
        assert cls.current_enrollment == 20
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_withdrawn_enrollment_reactivated(self, enrollment_service, mock_db):
        cls = _class(current=5)
        withdrawn = _enrollment(cls.id, "stu-1", status="withdrawn")
        mock_db.execute.side_effect = [scalar_result(cls), scalar_result(withdrawn)]

        result = await enrollment_service.force_enroll("stu-1", cls.id)

        assert result is withdrawn
        assert withdrawn.status == "enrolled"
        assert withdrawn.withdrawn_at is None
        assert cls.current_enrollment == 6

    @pytest.mark.asyncio
    async def test_class_not_found(self, enrollment_service, mock_db):
        mock_db.execute.return_value = scalar_result(None)

        with pytest.raises(ClassNotFoundError):
            await enrollment_service.force_enroll("stu-1", "missing")


class TestTransferStudent:
    """Tests for transfer_student."""

    @pytest.mark.asyncio
    async def test_transfer_moves_enrollment_and_counters(self, enrollment_service, mock_db):
        source_class = _class(current=35)
        target_class = _class(current=10)
        source = _enrollment(source_class.id, "stu-1")
        source.policy_exempt = True
        mock_db.execute.side_effect = [
            scalar_result(source_class),
            scalar_result(target_class),
            scalar_result(source),
            scalar_result(None),
        ]

        destination = await enrollment_service.transfer_student(
            "stu-1", source_class.id, target_class.id, performed_by="balancing:op-1"
        )

        assert source.status == "transferred"
        assert source.withdrawn_at is not None
        assert destination.class_id == target_class.id
        assert destination.policy_exempt is True
        assert source_class.current_enrollment == 34
        assert target_class.current_enrollment == 11
        audits = _added(mock_db, EnrollmentAuditLog)
        assert [a.action for a in audits] == ["transferred_out", "transferred_in"]
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_transfer_into_section_already_enrolled(self, enrollment_service, mock_db):
        source_class = _class(current=35)
        target_class = _class(current=40)
        source = _enrollment(source_class.id, "stu-1")
        source.policy_exempt = True
        already_there = _enrollment(target_class.id, "stu-1")
        mock_db.execute.side_effect = [
            scalar_result(source_class),
            scalar_result(target_class),
            scalar_result(source),
            scalar_result(already_there),
        ]

        destination = await enrollment_service.transfer_student(
            "stu-1", source_class.id, target_class.id
        )

        assert destination is already_there
        assert already_there.policy_exempt is True
        assert source.status == "transferred"
        assert source_class.current_enrollment == 34
        assert target_class.current_enrollment == 40
        assert not _added(mock_db, Enrollment)
        audits = _added(mock_db, EnrollmentAuditLog)
        assert [a.action for a in audits] == ["transferred_out"]

    @pytest.mark.asyncio
    async def test_transfer_requires_active_source(self, enrollment_service, mock_db):
        source_class = _class()
        target_class = _class()
        mock_db.execute.side_effect = [
            scalar_result(source_class),
            scalar_result(target_class),
            scalar_result(_enrollment(source_class.id, "stu-1", status="withdrawn")),
        ]

        with pytest.raises(NotEnrolledError):
            await enrollment_service.transfer_student("stu-1", source_class.id, target_class.id)

    @pytest.mark.asyncio
    async def test_transfer_target_missing(self, enrollment_service, mock_db):
        mock_db.execute.side_effect = [scalar_result(_class()), scalar_result(None)]

        with pytest.raises(ClassNotFoundError):
            await enrollment_service.transfer_student("stu-1", "a", "missing")


class TestCapacityAndPolicy:
    """Tests for increase_capacity and mark_policy_exempt."""

    @pytest.mark.asyncio
    async def test_increase_capacity_by_amount(self, enrollment_service, mock_db):
        cls = _class(capacity=30, current=35)
        mock_db.execute.return_value = scalar_result(cls)

        assert await enrollment_service.increase_capacity(cls.id, 10) == 40

    @pytest.mark.asyncio
    async def test_increase_capacity_at_least_enrollment(self, enrollment_service, mock_db):
        cls = _class(capacity=30, current=35)
        mock_db.execute.return_value = scalar_result(cls)

        assert await enrollment_service.increase_capacity(cls.id, 2) == 35
        assert await enrollment_service.increase_capacity(cls.id) == 35

    @pytest.mark.asyncio
    async def test_mark_policy_exempt(self, enrollment_service, mock_db):
        result = MagicMock()
        result.rowcount = 2
        mock_db.execute.return_value = result

        assert await enrollment_service.mark_policy_exempt("cls-1", ["s1", "s2"]) == 2

    @pytest.mark.asyncio
    async def test_mark_policy_exempt_no_students(self, enrollment_service, mock_db):
        assert await enrollment_service.mark_policy_exempt("cls-1", []) == 0
        mock_db.execute.assert_not_called()
