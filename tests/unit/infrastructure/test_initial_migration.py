# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the initial Alembic migration."""

import importlib.util
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

import edubalance.infrastructure.database.migrations as migrations_pkg
from edubalance.infrastructure.database.models.base import Base

MIGRATION_PATH = Path(migrations_pkg.__file__).parent / "versions" / "001_initial_schema.py"


@pytest.fixture
def migration():
    """Load the migration module from its file."""
    spec = importlib.util.spec_from_file_location("initial_schema", MIGRATION_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestInitialMigration:
    """Tests for 001_initial_schema."""

    def test_revision_identifiers(self, migration):
        assert migration.revision == "001_initial_schema"
        assert migration.down_revision is None

    def test_upgrade_creates_every_model_table(self, migration):
        op = MagicMock()
        with patch.object(migration, "op", op):
            migration.upgrade()

        created = [c.args[0] for c in op.create_table.call_args_list]
        assert set(created) == set(Base.metadata.tables)
        # Referenced tables come first
        assert created.index("departments") < created.index("classes")
        assert created.index("classes") < created.index("enrollments")

    def test_downgrade_drops_in_reverse(self, migration):
        op = MagicMock()
        with patch.object(migration, "op", op):
            migration.downgrade()

        dropped = [c.args[0] for c in op.drop_table.call_args_list]
        assert set(dropped) == set(Base.metadata.tables)
        assert dropped.index("enrollments") < dropped.index("classes")
