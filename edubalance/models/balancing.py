# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Balancing DTOs: section balances, operations and plans."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from edubalance.utils.datetime import utc_now


class OperationType(str, Enum):
    """Kinds of balancing operation."""

    REDISTRIBUTE = "redistribute"
    SWAP = "swap"
    MOVE = "move"


class OperationStatus(str, Enum):
    """Balancing operation lifecycle."""

    PENDING = "pending"
    APPROVED = "approved"
    COMPLETED = "completed"
    FAILED = "failed"


class SectionBalance(BaseModel):
    """Derived enrollment/capacity figures for one section.

    Recomputed on every request and never persisted on its own.
    """

    model_config = ConfigDict(frozen=True)

    section_id: str
    section_name: str
    current_enrollment: int = Field(ge=0)
    capacity: int = Field(ge=0)
    utilization_rate: float
    target_enrollment: int = Field(ge=0)
    balance_score: float = Field(ge=0, le=100)


class BalancingOperation(BaseModel):
    """A proposed transfer of specific students between two sections."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: OperationType = OperationType.REDISTRIBUTE
    from_section_id: str
    to_section_id: str
    student_ids: list[str] = Field(min_length=1)
    reason: str
    estimated_impact: str
    status: OperationStatus = OperationStatus.PENDING
    created_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = None
    from_section_name: str | None = None
    to_section_name: str | None = None


class ExpectedOutcome(BaseModel):
    """Before/after snapshots of a plan."""

    model_config = ConfigDict(frozen=True)

    before_balance: list[SectionBalance]
    after_balance: list[SectionBalance]
    improvement_score: float = Field(ge=0, le=100)


class BalancingPlan(BaseModel):
    """Ordered balancing operations plus their projected effect.

    Plans are immutable; callers re-request for fresh data.
    """

    model_config = ConfigDict(frozen=True)

    operations: list[BalancingOperation]
    expected_outcome: ExpectedOutcome
    feasibility_score: float = Field(ge=0, le=100)
    estimated_time_to_complete: int = Field(ge=0, description="Minutes")
