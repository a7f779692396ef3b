# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for EduBalance.

All timestamps are stored in UTC (PostgreSQL TIMESTAMPTZ) and all Python
datetimes are timezone-aware, so naive/aware comparisons never happen.

Usage:
    from edubalance.utils.datetime import utc_now

    created_at = Column(DateTime(timezone=True), default=utc_now)
"""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None. Naive values are assumed
        to already be UTC.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def hours_ago(hours: int) -> datetime:
    """Get a datetime N hours ago from now.

    Args:
        hours: Number of hours to go back.

    Returns:
        Timezone-aware UTC datetime.
    """
    return utc_now() - timedelta(hours=hours)


def is_expired(expiry: datetime | None, reference: datetime | None = None) -> bool:
    """Check if an optional expiry has passed.

    Unlike a token expiry, a missing expiry here means "never expires".

    Args:
        expiry: The expiry datetime to check.
        reference: Point in time to compare against (defaults to now).

    Returns:
        True if expiry is set and lies before the reference time.
    """
    if expiry is None:
        return False

    now = ensure_utc(reference) if reference is not None else utc_now()
    return now > ensure_utc(expiry)


def epoch_millis(dt: datetime | None = None) -> int:
    """Milliseconds since the Unix epoch for dt (defaults to now)."""
    return int((dt or utc_now()).timestamp() * 1000)
