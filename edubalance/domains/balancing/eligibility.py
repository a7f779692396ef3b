# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Transfer eligibility filter.

Selects which enrolled students of a source section may move to a
destination section. Schedule conflicts are checked at day granularity:
two descriptors conflict when they share a day token (mon..sun), whatever
the times of day.

Store failures never abort plan generation here. A failed candidate fetch
yields no eligible students; a failed schedule lookup excludes the
student, since an unknown conflict status is treated as a conflict.
"""

import logging
import re
from collections.abc import Collection

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from edubalance.infrastructure.database.models.tenant import ENROLLED, Class, Enrollment

logger = logging.getLogger(__name__)

_DAY_PATTERN = re.compile(r"\b(mon|tue|wed|thu|fri|sat|sun)", re.IGNORECASE)


def extract_days(schedule: str | None) -> set[str]:
    """Extract lowercase day tokens from a free-text schedule descriptor.

    Example:
        >>> sorted(extract_days("Mon/Wed 10:00-11:30, Friday lab"))
        ['fri', 'mon', 'wed']
    """
    if not schedule:
        return set()
    return {match.lower() for match in _DAY_PATTERN.findall(schedule)}


def schedules_overlap(schedule_a: str | None, schedule_b: str | None) -> bool:
    """True when the two descriptors share at least one day token."""
    return bool(extract_days(schedule_a) & extract_days(schedule_b))


class TransferEligibilityFilter:
    """Chooses movable students for a source -> destination transfer.

    Attributes:
        db: Async database session.
        candidate_multiplier: Candidates fetched per student requested, to
            leave room for rejections.
    """

    def __init__(self, db: AsyncSession, candidate_multiplier: int = 2) -> None:
        self.db = db
        self.candidate_multiplier = candidate_multiplier

    async def get_eligible_students(
        self,
        from_section_id: str,
        to_section_id: str,
        count: int,
        exclude: Collection[str] = (),
    ) -> list[str]:
        """Select up to count students that can move without a schedule clash.

        Candidates are the source's active enrollments, most recently
        enrolled first.

        Args:
            from_section_id: Source section.
            to_section_id: Destination section.
            count: Students wanted.
            exclude: Students already assigned elsewhere in the same plan.

        Returns:
            Ordered list of at most count student ids.
        """
        if count <= 0:
            return []

        limit = count * self.candidate_multiplier + len(exclude)
        try:
            candidates = await self._fetch_candidates(from_section_id, limit)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch transfer candidates: from=%s, to=%s, error=%s",
                from_section_id,
                to_section_id,
                e,
            )
            return []

        try:
            target_schedule = await self._get_section_schedule(to_section_id)
        except SQLAlchemyError as e:
            logger.warning(
                "Destination schedule unavailable, assuming conflicts: section=%s, error=%s",
                to_section_id,
                e,
            )
            return []

        target_days = extract_days(target_schedule)
        eligible: list[str] = []

        for student_id in candidates:
            if len(eligible) >= count:
                break
            if student_id in exclude:
                continue
            if target_days and await self._has_schedule_conflict(student_id, target_days):
                continue
            eligible.append(student_id)

        logger.debug(
            "Eligible students: from=%s, to=%s, requested=%d, candidates=%d, eligible=%d",
            from_section_id,
            to_section_id,
            count,
            len(candidates),
            len(eligible),
        )
        return eligible

    async def _has_schedule_conflict(self, student_id: str, target_days: set[str]) -> bool:
        """Check a student's active schedules against the destination days."""
        try:
            schedules = await self._get_student_schedules(student_id)
        except SQLAlchemyError as e:
            logger.warning(
                "Schedule lookup failed, excluding student: student=%s, error=%s",
                student_id,
                e,
            )
            return True

        return any(extract_days(schedule) & target_days for schedule in schedules)

    async def _fetch_candidates(self, section_id: str, limit: int) -> list[str]:
        query = (
            select(Enrollment.student_id)
            .where(
                Enrollment.class_id == section_id,
                Enrollment.status == ENROLLED,
            )
            .order_by(Enrollment.enrolled_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _get_section_schedule(self, section_id: str) -> str | None:
        result = await self.db.execute(select(Class.schedule).where(Class.id == section_id))
        return result.scalar_one_or_none()

    async def _get_student_schedules(self, student_id: str) -> list[str | None]:
        query = (
            select(Class.schedule)
            .join(Enrollment, Enrollment.class_id == Class.id)
            .where(
                Enrollment.student_id == student_id,
                Enrollment.status == ENROLLED,
            )
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())
