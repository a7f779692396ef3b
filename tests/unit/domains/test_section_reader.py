# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the section balance reader."""

from types import SimpleNamespace

import pytest
from sqlalchemy.exc import SQLAlchemyError

from conftest import rows_result
from edubalance.domains.balancing.reader import SectionBalanceReader
from edubalance.infrastructure.database.connection import StoreAccessError


def _row(section_id: str, name: str, capacity: int, current: int):
    return SimpleNamespace(id=section_id, name=name, capacity=capacity, current_enrollment=current)


@pytest.fixture
def reader(mock_db):
    """Create section balance reader with mock database."""
    return SectionBalanceReader(db=mock_db)


class TestGetSectionBalances:
    """Tests for get_section_balances."""

    @pytest.mark.asyncio
    async def test_balances_follow_requested_order(self, reader, mock_db):
        mock_db.execute.return_value = rows_result(
            [_row("b", "Section B", 100, 40), _row("a", "Section A", 100, 95)]
        )

        balances = await reader.get_section_balances(["a", "b"])

        assert [b.section_id for b in balances] == ["a", "b"]
        assert balances[0].section_name == "Section A"
        assert balances[0].utilization_rate == pytest.approx(95.0)
        assert balances[0].target_enrollment == 95
        assert balances[0].balance_score == pytest.approx(80.0)

    @pytest.mark.asyncio
    async def test_missing_sections_omitted(self, reader, mock_db):
        mock_db.execute.return_value = rows_result([_row("a", "Section A", 30, 10)])

        balances = await reader.get_section_balances(["a", "ghost"])

        assert [b.section_id for b in balances] == ["a"]

    @pytest.mark.asyncio
    async def test_duplicate_ids_collapsed(self, reader, mock_db):
        mock_db.execute.return_value = rows_result([_row("a", "Section A", 30, 10)])

        balances = await reader.get_section_balances(["a", "a"])

        assert len(balances) == 1

    @pytest.mark.asyncio
    async def test_zero_capacity_section(self, reader, mock_db):
        mock_db.execute.return_value = rows_result([_row("a", "Lab", 0, 3)])

        balances = await reader.get_section_balances(["a"])

        assert balances[0].utilization_rate == 0.0
        assert balances[0].balance_score == 0.0

    @pytest.mark.asyncio
    async def test_empty_input_rejected(self, reader, mock_db):
        with pytest.raises(ValueError):
            await reader.get_section_balances([])

        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_error_wrapped(self, reader, mock_db):
        mock_db.execute.side_effect = SQLAlchemyError("connection refused")

        with pytest.raises(StoreAccessError) as exc_info:
            await reader.get_section_balances(["a"])

        assert exc_info.value.message == "Failed to fetch section data"
        assert isinstance(exc_info.value.original_error, SQLAlchemyError)
