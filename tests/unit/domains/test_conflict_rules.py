# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for conflict detection rules and the rule registry."""

from types import SimpleNamespace

import pytest

from conftest import rows_result
from edubalance.domains.conflicts.rules import (
    CapacityRule,
    ConflictRuleRegistry,
    DetectionContext,
    PolicyRule,
    PrerequisiteRule,
    RuleNotRegisteredError,
    ScheduleRule,
    SuspiciousActivityRule,
    create_default_registry,
)
from edubalance.models.conflict import ConflictSeverity, ConflictStatus, ConflictType


@pytest.fixture
def context(mock_db, sample_institution_id):
    """Create a detection context over the mock session."""
    return DetectionContext(db=mock_db, institution_id=sample_institution_id)


def _audit_rows(student_id: str, email: str, count: int):
    return [SimpleNamespace(student_id=student_id, email=email) for _ in range(count)]


class TestCapacityRule:
    """Tests for CapacityRule."""

    @pytest.mark.asyncio
    async def test_over_capacity_class_flagged(self, context, mock_db):
        mock_db.execute.return_value = rows_result(
            [SimpleNamespace(id="cls-1", name="Biology 101", capacity=30, current_enrollment=35)]
        )

        conflicts = await CapacityRule().evaluate(context)

        assert len(conflicts) == 1
        conflict = conflicts[0]
        assert conflict.id == "capacity-violation-cls-1"
        assert conflict.type == ConflictType.CAPACITY_EXCEEDED
        assert conflict.severity == ConflictSeverity.HIGH
        assert conflict.affected_students == 5
        assert conflict.class_id == "cls-1"
        assert conflict.class_name == "Biology 101"
        assert conflict.status == ConflictStatus.OPEN
        assert conflict.description == (
            'Class "Biology 101" has exceeded its capacity of 30 with 35 enrolled students'
        )
        assert conflict.detected_at == context.detected_at

    @pytest.mark.asyncio
    async def test_no_violations(self, context, mock_db):
        mock_db.execute.return_value = rows_result([])

        assert await CapacityRule().evaluate(context) == []


class TestSuspiciousActivityRule:
    """Tests for SuspiciousActivityRule."""

    @pytest.mark.asyncio
    async def test_more_than_threshold_flagged(self, context, mock_db):
        mock_db.execute.return_value = rows_result(_audit_rows("stu-1", "a@school.edu", 11))

        conflicts = await SuspiciousActivityRule(window_hours=24, threshold=10).evaluate(context)

        assert len(conflicts) == 1
        conflict = conflicts[0]
        assert conflict.id == "suspicious-activity-stu-1"
        assert conflict.severity == ConflictSeverity.MEDIUM
        assert conflict.affected_students == 1
        assert conflict.student_id == "stu-1"
        assert conflict.student_name == "a@school.edu"
        assert conflict.description == (
            "Student a@school.edu has enrolled in 11 classes in the last 24 hours"
        )

    @pytest.mark.asyncio
    async def test_exactly_threshold_not_flagged(self, context, mock_db):
        mock_db.execute.return_value = rows_result(_audit_rows("stu-1", "a@school.edu", 10))

        conflicts = await SuspiciousActivityRule(window_hours=24, threshold=10).evaluate(context)

        assert conflicts == []

    @pytest.mark.asyncio
    async def test_counts_per_student(self, context, mock_db):
        rows = _audit_rows("stu-1", "a@school.edu", 6) + _audit_rows("stu-2", "b@school.edu", 12)
        mock_db.execute.return_value = rows_result(rows)

        conflicts = await SuspiciousActivityRule(threshold=10).evaluate(context)

        assert [c.student_id for c in conflicts] == ["stu-2"]


class TestPlaceholderRules:
    """Tests for passes that report nothing yet."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rule_cls", [PrerequisiteRule, ScheduleRule, PolicyRule])
    async def test_returns_no_conflicts_without_queries(self, context, mock_db, rule_cls):
        assert await rule_cls().evaluate(context) == []
        mock_db.execute.assert_not_called()


class TestConflictRuleRegistry:
    """Tests for ConflictRuleRegistry."""

    def test_register_and_get(self) -> None:
        registry = ConflictRuleRegistry()
        rule = CapacityRule()

        registry.register(rule)

        assert registry.get(ConflictType.CAPACITY_EXCEEDED) is rule
        assert registry.list_all() == [rule]

    def test_duplicate_registration_rejected(self) -> None:
        registry = ConflictRuleRegistry()
        registry.register(CapacityRule())

        with pytest.raises(ValueError):
            registry.register(CapacityRule())

    def test_run_order_follows_registration(self) -> None:
        registry = ConflictRuleRegistry()
        registry.register(PolicyRule())
        registry.register(CapacityRule())

        assert registry.list_types() == [
            ConflictType.POLICY_VIOLATION,
            ConflictType.CAPACITY_EXCEEDED,
        ]

    def test_unregistered_lookup(self) -> None:
        registry = ConflictRuleRegistry()

        with pytest.raises(RuleNotRegisteredError) as exc_info:
            registry.get(ConflictType.POLICY_VIOLATION)

        assert exc_info.value.conflict_type == ConflictType.POLICY_VIOLATION
        assert "policy_violation" in str(exc_info.value)

    def test_default_registry_has_five_rules_in_order(self, settings) -> None:
        registry = create_default_registry(settings)

        assert registry.list_types() == [
            ConflictType.CAPACITY_EXCEEDED,
            ConflictType.PREREQUISITE_VIOLATION,
            ConflictType.SCHEDULE_CONFLICT,
            ConflictType.SUSPICIOUS_ACTIVITY,
            ConflictType.POLICY_VIOLATION,
        ]

    def test_default_registry_uses_configured_thresholds(self, settings) -> None:
        settings.conflicts.suspicious_window_hours = 12
        settings.conflicts.suspicious_enrollment_threshold = 3

        rule = create_default_registry(settings).get(ConflictType.SUSPICIOUS_ACTIVITY)

        assert rule.window_hours == 12
        assert rule.threshold == 3
