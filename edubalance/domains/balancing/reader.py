# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Section balance reader."""

import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from edubalance.domains.balancing.distribution import IDEAL_UTILIZATION, build_section_balance
from edubalance.infrastructure.database.connection import StoreAccessError
from edubalance.infrastructure.database.models.tenant import Class
from edubalance.models.balancing import SectionBalance

logger = logging.getLogger(__name__)


class SectionBalanceReader:
    """Loads enrollment/capacity figures and derives SectionBalance values."""

    def __init__(
        self,
        db: AsyncSession,
        ideal_utilization: float = IDEAL_UTILIZATION,
    ) -> None:
        self.db = db
        self.ideal_utilization = ideal_utilization

    async def get_section_balances(self, section_ids: Iterable[str]) -> list[SectionBalance]:
        """Read current balances for the given sections.

        Sections that do not exist are omitted; callers reconcile counts.
        Results follow the caller's id order with duplicates collapsed.

        Args:
            section_ids: Non-empty collection of section identifiers.

        Returns:
            One SectionBalance per existing section.

        Raises:
            ValueError: If no section ids are given.
            StoreAccessError: If the sections cannot be read.
        """
        ids = list(dict.fromkeys(section_ids))
        if not ids:
            raise ValueError("At least one section id is required")

        query = select(
            Class.id,
            Class.name,
            Class.capacity,
            Class.current_enrollment,
        ).where(Class.id.in_(ids))

        try:
            result = await self.db.execute(query)
            rows = result.all()
        except SQLAlchemyError as e:
            raise StoreAccessError("Failed to fetch section data", e) from e

        by_id = {row.id: row for row in rows}
        missing = [section_id for section_id in ids if section_id not in by_id]
        if missing:
            logger.debug("Sections not found and omitted: %s", missing)

        return [
            build_section_balance(
                section_id=section_id,
                section_name=by_id[section_id].name,
                current_enrollment=by_id[section_id].current_enrollment or 0,
                capacity=by_id[section_id].capacity or 0,
                ideal_utilization=self.ideal_utilization,
            )
            for section_id in ids
            if section_id in by_id
        ]
