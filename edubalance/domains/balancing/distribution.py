# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scoring and optimal distribution for section balancing.

Pure functions, no I/O. Utilization is always expressed as a percentage
(0-100+), and a section with zero capacity has zero utilization.
"""

import math
from collections.abc import Sequence

from edubalance.models.balancing import (
    BalancingOperation,
    OperationType,
    SectionBalance,
)

IDEAL_UTILIZATION = 85.0

# Feasibility heuristic
BASE_FEASIBILITY = 70
SMALL_MOVE_BONUS = 20  # <= 3 students
MEDIUM_MOVE_BONUS = 10  # <= 6 students
REDISTRIBUTE_BONUS = 10


def utilization_rate(enrollment: int, capacity: int) -> float:
    """Enrollment as a percentage of capacity (0 when capacity is 0)."""
    if capacity <= 0:
        return 0.0
    return enrollment / capacity * 100


def calculate_balance_score(
    enrollment: int,
    capacity: int,
    ideal_utilization: float = IDEAL_UTILIZATION,
) -> float:
    """Score how close a section's utilization is to the ideal.

    100 at the ideal, minus two points per percentage point of deviation,
    floored at 0. Zero capacity counts as zero utilization.

    Args:
        enrollment: Enrolled students.
        capacity: Seat limit.
        ideal_utilization: Utilization percentage scoring 100.

    Returns:
        Balance score in [0, 100].
    """
    deviation = abs(utilization_rate(enrollment, capacity) - ideal_utilization)
    return max(0.0, 100.0 - deviation * 2)


def build_section_balance(
    section_id: str,
    section_name: str,
    current_enrollment: int,
    capacity: int,
    ideal_utilization: float = IDEAL_UTILIZATION,
) -> SectionBalance:
    """Derive a SectionBalance whose target equals its current enrollment."""
    return SectionBalance(
        section_id=section_id,
        section_name=section_name,
        current_enrollment=current_enrollment,
        capacity=capacity,
        utilization_rate=utilization_rate(current_enrollment, capacity),
        target_enrollment=current_enrollment,
        balance_score=calculate_balance_score(current_enrollment, capacity, ideal_utilization),
    )


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def calculate_optimal_distribution(
    balances: Sequence[SectionBalance],
    target_utilization: float = IDEAL_UTILIZATION,
    ideal_utilization: float = IDEAL_UTILIZATION,
) -> list[SectionBalance]:
    """Compute per-section target enrollments for a target utilization.

    When aggregate enrollment already exceeds the aggregate target, every
    section keeps its current enrollment as target. Otherwise each target is
    capacity x target/100, rounded and capped at capacity. Balance scores
    are recomputed against the targets.

    Args:
        balances: Current section balances.
        target_utilization: Desired utilization percentage.
        ideal_utilization: Utilization percentage scoring 100.

    Returns:
        New SectionBalance objects, in input order.
    """
    total_enrollment = sum(b.current_enrollment for b in balances)
    total_capacity = sum(b.capacity for b in balances)
    ratio = target_utilization / 100

    if total_enrollment > total_capacity * ratio:
        return [
            b.model_copy(
                update={
                    "target_enrollment": b.current_enrollment,
                    "balance_score": calculate_balance_score(
                        b.current_enrollment, b.capacity, ideal_utilization
                    ),
                }
            )
            for b in balances
        ]

    distribution = []
    for b in balances:
        target = min(round_half_up(b.capacity * ratio), b.capacity)
        distribution.append(
            b.model_copy(
                update={
                    "target_enrollment": target,
                    "balance_score": calculate_balance_score(target, b.capacity, ideal_utilization),
                }
            )
        )
    return distribution


def utilization_std_dev(rates: Sequence[float]) -> float:
    """Population standard deviation of utilization rates (0 for no rates)."""
    if not rates:
        return 0.0
    mean = sum(rates) / len(rates)
    variance = sum((rate - mean) ** 2 for rate in rates) / len(rates)
    return math.sqrt(variance)


def calculate_improvement_score(
    current: Sequence[SectionBalance],
    target: Sequence[SectionBalance],
) -> float:
    """Projected relative reduction in cross-section utilization spread.

    Returns:
        100 x (sigma_current - sigma_target) / sigma_current, clamped to
        [0, 100]; 0 when the current spread is already 0.
    """
    current_std = utilization_std_dev([b.utilization_rate for b in current])
    if current_std == 0:
        return 0.0

    target_std = utilization_std_dev(
        [utilization_rate(b.target_enrollment, b.capacity) for b in target]
    )
    improvement = max(0.0, current_std - target_std)
    return min(100.0, improvement / current_std * 100)


def calculate_operation_impact(
    from_enrollment: int,
    from_capacity: int,
    to_enrollment: int,
    to_capacity: int,
    student_count: int,
) -> float:
    """Reduction in the utilization gap between two sections from a move.

    Args:
        from_enrollment: Source enrollment before the move.
        from_capacity: Source capacity.
        to_enrollment: Destination enrollment before the move.
        to_capacity: Destination capacity.
        student_count: Students moved.

    Returns:
        Gap reduction in percentage points, floored at 0.
    """
    current_gap = abs(
        utilization_rate(from_enrollment, from_capacity)
        - utilization_rate(to_enrollment, to_capacity)
    )
    new_gap = abs(
        utilization_rate(from_enrollment - student_count, from_capacity)
        - utilization_rate(to_enrollment + student_count, to_capacity)
    )
    return max(0.0, current_gap - new_gap)


def calculate_feasibility_score(operations: Sequence[BalancingOperation]) -> float:
    """Average heuristic feasibility of a set of operations.

    Each operation starts at 70, gains 20 when moving at most 3 students
    (or 10 when at most 6), and 10 more when it is a redistribution.
    No operations is trivially feasible.

    Returns:
        Feasibility score in [0, 100].
    """
    if not operations:
        return 100.0

    total = 0
    for operation in operations:
        score = BASE_FEASIBILITY
        moved = len(operation.student_ids)
        if moved <= 3:
            score += SMALL_MOVE_BONUS
        elif moved <= 6:
            score += MEDIUM_MOVE_BONUS
        if operation.type == OperationType.REDISTRIBUTE:
            score += REDISTRIBUTE_BONUS
        total += score

    return min(100.0, total / len(operations))
