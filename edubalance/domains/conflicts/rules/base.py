# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base classes for enrollment conflict detection rules.

Each rule is one independent detection pass over an institution. Rules are
stateless between calls: conflicts are recomputed from the store every
time, and ids are derived from the offending entity so repeated passes
yield the same id for the same issue.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from edubalance.models.conflict import ConflictType, EnrollmentConflict
from edubalance.utils.datetime import utc_now


@dataclass
class DetectionContext:
    """Inputs shared by every rule during one detection pass.

    Attributes:
        db: Async database session for the institution database.
        institution_id: Institution being scanned.
        detected_at: Timestamp stamped on every conflict of the pass.
    """

    db: AsyncSession
    institution_id: str
    detected_at: datetime = field(default_factory=utc_now)


class ConflictRule(ABC):
    """Abstract base class for conflict detection rules."""

    def __init__(self) -> None:
        """Initialize the rule."""
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    @abstractmethod
    def conflict_type(self) -> ConflictType:
        """Return the type of conflict this rule detects."""
        pass

    @property
    def name(self) -> str:
        """Return human-readable name of the rule."""
        return self.conflict_type.value.replace("_", " ").title()

    @abstractmethod
    async def evaluate(self, context: DetectionContext) -> list[EnrollmentConflict]:
        """Detect conflicts of this rule's type.

        Args:
            context: Detection inputs.

        Returns:
            Detected conflicts, possibly empty.
        """
        pass
