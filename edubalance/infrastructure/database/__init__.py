# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for PostgreSQL connections.

Example:
    from edubalance.infrastructure.database import Database

    database = Database.from_settings(settings)
    async with database.session() as session:
        result = await session.execute(select(Class))
"""

from edubalance.infrastructure.database.connection import (
    Database,
    StoreAccessError,
)

__all__ = [
    "Database",
    "StoreAccessError",
]
