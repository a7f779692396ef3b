# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Conflict detection rules.

Available rules:
- CapacityRule: classes enrolled beyond capacity
- SuspiciousActivityRule: bursts of enrollment events per student
- PrerequisiteRule, ScheduleRule, PolicyRule: passes that report nothing yet
"""

from edubalance.domains.conflicts.rules.base import ConflictRule, DetectionContext
from edubalance.domains.conflicts.rules.capacity import CapacityRule
from edubalance.domains.conflicts.rules.policy import PolicyRule
from edubalance.domains.conflicts.rules.prerequisite import PrerequisiteRule
from edubalance.domains.conflicts.rules.registry import (
    ConflictRuleRegistry,
    RuleNotRegisteredError,
    create_default_registry,
)
from edubalance.domains.conflicts.rules.schedule import ScheduleRule
from edubalance.domains.conflicts.rules.suspicious_activity import SuspiciousActivityRule

__all__ = [
    # Base
    "ConflictRule",
    "DetectionContext",
    # Rules
    "CapacityRule",
    "SuspiciousActivityRule",
    "PrerequisiteRule",
    "ScheduleRule",
    "PolicyRule",
    # Registry
    "ConflictRuleRegistry",
    "RuleNotRegisteredError",
    "create_default_registry",
]
