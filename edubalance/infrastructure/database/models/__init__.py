# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models."""

from edubalance.infrastructure.database.models.base import Base, TimestampMixin, new_uuid

__all__ = ["Base", "TimestampMixin", "new_uuid"]
