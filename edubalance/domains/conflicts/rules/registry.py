# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Conflict rule registry.

This module provides:
- ConflictRuleRegistry: Ordered set of detection rules, one per conflict type
- create_default_registry: Factory registering the built-in rules

The detector runs rules in registration order, so the order of
registration is the order conflicts appear in a detection result.

Usage:
    from edubalance.domains.conflicts.rules import create_default_registry

    registry = create_default_registry(settings)
    detector = EnrollmentConflictDetector(db, registry=registry)
"""

import logging

from edubalance.core.config import Settings, get_settings
from edubalance.domains.conflicts.rules.base import ConflictRule
from edubalance.models.conflict import ConflictType

logger = logging.getLogger(__name__)


class RuleNotRegisteredError(Exception):
    """Raised when no rule detects the requested conflict type.

    Attributes:
        conflict_type: The conflict type that was requested.
    """

    def __init__(self, conflict_type: ConflictType) -> None:
        self.conflict_type = conflict_type
        super().__init__(f"No rule detects '{conflict_type.value}' conflicts")


class ConflictRuleRegistry:
    """Detection rules keyed by the conflict type they report.

    Example:
        registry = ConflictRuleRegistry()
        registry.register(CapacityRule())
        registry.register(SuspiciousActivityRule(window_hours=24, threshold=10))

        for rule in registry.list_all():
            conflicts = await rule.evaluate(context)
    """

    def __init__(self) -> None:
        self._rules: dict[ConflictType, ConflictRule] = {}

    def register(self, rule: ConflictRule) -> None:
        """Add a rule to the end of the run order.

        Raises:
            ValueError: If a rule already reports this conflict type, since
                two rules would emit conflicts in the same id namespace.
        """
        if rule.conflict_type in self._rules:
            raise ValueError(
                f"A rule for '{rule.conflict_type.value}' conflicts is already registered"
            )

        self._rules[rule.conflict_type] = rule
        logger.debug("Registered conflict rule: %s", rule.name)

    def get(self, conflict_type: ConflictType) -> ConflictRule:
        """Get the rule reporting a conflict type.

        Raises:
            RuleNotRegisteredError: If no rule reports it.
        """
        rule = self._rules.get(conflict_type)
        if rule is None:
            raise RuleNotRegisteredError(conflict_type)
        return rule

    def list_types(self) -> list[ConflictType]:
        """Conflict types covered, in run order."""
        return list(self._rules)

    def list_all(self) -> list[ConflictRule]:
        """Rules in run order."""
        return list(self._rules.values())


def create_default_registry(settings: Settings | None = None) -> ConflictRuleRegistry:
    """Create a registry with the five built-in detection rules.

    Args:
        settings: Application settings, defaults to get_settings().

    Returns:
        Configured rule registry.
    """
    from edubalance.domains.conflicts.rules.capacity import CapacityRule
    from edubalance.domains.conflicts.rules.policy import PolicyRule
    from edubalance.domains.conflicts.rules.prerequisite import PrerequisiteRule
    from edubalance.domains.conflicts.rules.schedule import ScheduleRule
    from edubalance.domains.conflicts.rules.suspicious_activity import SuspiciousActivityRule

    conflicts = (settings or get_settings()).conflicts

    registry = ConflictRuleRegistry()
    registry.register(CapacityRule())
    registry.register(PrerequisiteRule())
    registry.register(ScheduleRule())
    registry.register(
        SuspiciousActivityRule(
            window_hours=conflicts.suspicious_window_hours,
            threshold=conflicts.suspicious_enrollment_threshold,
        )
    )
    registry.register(PolicyRule())

    logger.debug(
        "Created default conflict rules: %s",
        ", ".join(t.value for t in registry.list_types()),
    )
    return registry
