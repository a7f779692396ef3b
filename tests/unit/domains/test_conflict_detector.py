# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the enrollment conflict detector."""

from types import SimpleNamespace

import pytest
from sqlalchemy.exc import SQLAlchemyError

from conftest import rows_result
from edubalance.domains.conflicts.rules import ConflictRule, ConflictRuleRegistry
from edubalance.domains.conflicts.service import EnrollmentConflictDetector
from edubalance.infrastructure.database.connection import StoreAccessError
from edubalance.models.conflict import (
    ConflictSeverity,
    ConflictStatus,
    ConflictType,
    EnrollmentConflict,
)


class _StaticRule(ConflictRule):
    """Rule returning fixed conflicts or raising a fixed error."""

    def __init__(self, conflict_type, conflicts=None, error=None):
        super().__init__()
        self._type = conflict_type
        self._conflicts = conflicts or []
        self._error = error
        self.calls = 0

    @property
    def conflict_type(self):
        return self._type

    async def evaluate(self, context):
        self.calls += 1
        if self._error:
            raise self._error
        return list(self._conflicts)


def _conflict(conflict_id: str, conflict_type=ConflictType.CAPACITY_EXCEEDED):
    return EnrollmentConflict(
        id=conflict_id,
        type=conflict_type,
        severity=ConflictSeverity.HIGH,
        description="test",
        affected_students=1,
    )


def _registry(*rules):
    registry = ConflictRuleRegistry()
    for rule in rules:
        registry.register(rule)
    return registry


class TestDetectConflicts:
    """Tests for detect_conflicts."""

    @pytest.mark.asyncio
    async def test_results_concatenated_in_rule_order(self, mock_db, sample_institution_id):
        registry = _registry(
            _StaticRule(ConflictType.CAPACITY_EXCEEDED, [_conflict("capacity-violation-1")]),
            _StaticRule(
                ConflictType.SUSPICIOUS_ACTIVITY,
                [_conflict("suspicious-activity-9", ConflictType.SUSPICIOUS_ACTIVITY)],
            ),
        )
        mock_db.execute.return_value = rows_result([])
        detector = EnrollmentConflictDetector(mock_db, registry=registry)

        conflicts = await detector.detect_conflicts(sample_institution_id)

        assert [c.id for c in conflicts] == ["capacity-violation-1", "suspicious-activity-9"]
        assert all(c.status == ConflictStatus.OPEN for c in conflicts)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error", [SQLAlchemyError("timeout"), StoreAccessError("Failed to read")]
    )
    async def test_failing_rule_contributes_nothing(self, mock_db, sample_institution_id, error):
        failing = _StaticRule(ConflictType.CAPACITY_EXCEEDED, error=error)
        healthy = _StaticRule(
            ConflictType.SUSPICIOUS_ACTIVITY,
            [_conflict("suspicious-activity-1", ConflictType.SUSPICIOUS_ACTIVITY)],
        )
        mock_db.execute.return_value = rows_result([])
        detector = EnrollmentConflictDetector(mock_db, registry=_registry(failing, healthy))

        conflicts = await detector.detect_conflicts(sample_institution_id)

        assert [c.id for c in conflicts] == ["suspicious-activity-1"]
        assert healthy.calls == 1

    @pytest.mark.asyncio
    async def test_no_conflicts_skips_resolution_lookup(self, mock_db, sample_institution_id):
        detector = EnrollmentConflictDetector(
            mock_db, registry=_registry(_StaticRule(ConflictType.POLICY_VIOLATION))
        )

        assert await detector.detect_conflicts(sample_institution_id) == []
        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_recorded_resolutions_applied(self, mock_db, sample_institution_id):
        registry = _registry(
            _StaticRule(
                ConflictType.CAPACITY_EXCEEDED,
                [
                    _conflict("capacity-violation-1"),
                    _conflict("capacity-violation-2"),
                    _conflict("capacity-violation-3"),
                ],
            )
        )
        mock_db.execute.return_value = rows_result(
            [
                SimpleNamespace(conflict_id="capacity-violation-1", resolution_type="capacity_increase"),
                SimpleNamespace(conflict_id="capacity-violation-2", resolution_type="capacity_increase"),
                SimpleNamespace(conflict_id="capacity-violation-2", resolution_type="dismiss"),
            ]
        )
        detector = EnrollmentConflictDetector(mock_db, registry=registry)

        conflicts = await detector.detect_conflicts(sample_institution_id)

        assert [c.status for c in conflicts] == [
            ConflictStatus.RESOLVED,
            ConflictStatus.DISMISSED,
            ConflictStatus.OPEN,
        ]

    @pytest.mark.asyncio
    async def test_resolution_lookup_failure_reports_open(self, mock_db, sample_institution_id):
        registry = _registry(
            _StaticRule(ConflictType.CAPACITY_EXCEEDED, [_conflict("capacity-violation-1")])
        )
        mock_db.execute.side_effect = SQLAlchemyError("timeout")
        detector = EnrollmentConflictDetector(mock_db, registry=registry)

        conflicts = await detector.detect_conflicts(sample_institution_id)

        assert conflicts[0].status == ConflictStatus.OPEN

    @pytest.mark.asyncio
    async def test_default_registry_end_to_end(self, mock_db, settings, sample_institution_id):
        capacity_rows = rows_result(
            [SimpleNamespace(id="cls-1", name="Chemistry", capacity=30, current_enrollment=35)]
        )
        audit_rows = rows_result(
            [SimpleNamespace(student_id="stu-1", email="x@school.edu") for _ in range(11)]
        )
        resolution_rows = rows_result([])
        mock_db.execute.side_effect = [capacity_rows, audit_rows, resolution_rows]
        detector = EnrollmentConflictDetector(mock_db, settings=settings)

        conflicts = await detector.detect_conflicts(sample_institution_id)

        assert [(c.type, c.severity) for c in conflicts] == [
            (ConflictType.CAPACITY_EXCEEDED, ConflictSeverity.HIGH),
            (ConflictType.SUSPICIOUS_ACTIVITY, ConflictSeverity.MEDIUM),
        ]
        assert conflicts[0].affected_students == 5
