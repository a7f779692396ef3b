# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment conflict detector.

Runs every registered rule against an institution and concatenates the
results in rule order. Conflicts are not deduplicated across rules; each
rule owns its id namespace.

A rule that fails against the store contributes no conflicts instead of
failing the whole pass. Rules share the caller's session, so they run one
after another.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from edubalance.core.config import Settings
from edubalance.domains.conflicts.rules import (
    ConflictRuleRegistry,
    DetectionContext,
    create_default_registry,
)
from edubalance.infrastructure.database.connection import StoreAccessError
from edubalance.infrastructure.database.models.tenant import ConflictResolutionRecord
from edubalance.models.conflict import ConflictStatus, EnrollmentConflict, ResolutionType

logger = logging.getLogger(__name__)


class EnrollmentConflictDetector:
    """Detects enrollment-integrity conflicts for an institution.

    Attributes:
        db: Async database session.
        registry: Rules to run.
    """

    def __init__(
        self,
        db: AsyncSession,
        registry: ConflictRuleRegistry | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.db = db
        self.registry = registry or create_default_registry(settings)

    async def detect_conflicts(self, institution_id: str) -> list[EnrollmentConflict]:
        """Run all detection passes for an institution.

        Conflicts that already have a resolution on record are returned as
        resolved, or dismissed when the latest resolution was a dismissal.

        Args:
            institution_id: Institution to scan.

        Returns:
            Detected conflicts, possibly empty.
        """
        context = DetectionContext(db=self.db, institution_id=institution_id)
        conflicts: list[EnrollmentConflict] = []

        for rule in self.registry.list_all():
            try:
                found = await rule.evaluate(context)
            except (StoreAccessError, SQLAlchemyError) as e:
                logger.error(
                    "Conflict rule failed: rule=%s, institution=%s, error=%s",
                    rule.name,
                    institution_id,
                    e,
                )
                continue
            conflicts.extend(found)

        if conflicts:
            conflicts = await self._apply_resolution_status(conflicts)

        logger.info(
            "Detected conflicts: institution=%s, total=%d, open=%d",
            institution_id,
            len(conflicts),
            sum(1 for c in conflicts if c.status == ConflictStatus.OPEN),
        )
        return conflicts

    async def _apply_resolution_status(
        self,
        conflicts: list[EnrollmentConflict],
    ) -> list[EnrollmentConflict]:
        """Mark conflicts that have a recorded resolution."""
        query = (
            select(ConflictResolutionRecord.conflict_id, ConflictResolutionRecord.resolution_type)
            .where(ConflictResolutionRecord.conflict_id.in_({c.id for c in conflicts}))
            .order_by(ConflictResolutionRecord.resolved_at.asc())
        )

        try:
            result = await self.db.execute(query)
            rows = result.all()
        except SQLAlchemyError as e:
            logger.warning("Failed to load conflict resolutions, reporting all open: %s", e)
            return conflicts

        # Later rows overwrite earlier ones: latest resolution wins
        latest = {row.conflict_id: row.resolution_type for row in rows}

        resolved = []
        for conflict in conflicts:
            resolution_type = latest.get(conflict.id)
            if resolution_type is None:
                resolved.append(conflict)
                continue
            status = (
                ConflictStatus.DISMISSED
                if resolution_type == ResolutionType.DISMISS.value
                else ConflictStatus.RESOLVED
            )
            resolved.append(conflict.model_copy(update={"status": status}))
        return resolved
