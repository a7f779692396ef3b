# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization models: departments, class sections and users.

These tables are owned by the surrounding administration application;
the balancing engine only reads them, except for the enrollment counter
and capacity on Class which enrollment side effects keep current.
"""

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from edubalance.infrastructure.database.models.base import Base, TimestampMixin, new_uuid


class Department(Base, TimestampMixin):
    """Academic department belonging to an institution."""

    __tablename__ = "departments"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=new_uuid)
    institution_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    classes: Mapped[list["Class"]] = relationship(back_populates="department")


class Class(Base, TimestampMixin):
    """A schedulable class section.

    Attributes:
        capacity: Seat limit. Zero means no utilization potential.
        current_enrollment: Denormalized count of active enrollments.
        schedule: Free-text day/time descriptor such as "Mon Wed 10:00".
    """

    __tablename__ = "classes"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=new_uuid)
    department_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("departments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_enrollment: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    schedule: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    department: Mapped[Department] = relationship(back_populates="classes")


class User(Base, TimestampMixin):
    """Minimal user projection needed for conflict reporting."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=new_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    user_type: Mapped[str] = mapped_column(String(20), nullable=False, default="student")
