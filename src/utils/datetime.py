# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for the adaptive LMS.

All timestamps are stored in UTC (PostgreSQL TIMESTAMPTZ) and every
Python datetime handled by the services is timezone-aware. Client supplied
timestamps (offline sync, xAPI) arrive as ISO 8601 strings and are parsed
with parse_iso().

Usage:
------
    from src.utils.datetime import utc_now

    # For SQLAlchemy model defaults
    created_at = mapped_column(DateTime(timezone=True), default=utc_now)
"""

from datetime import datetime, timedelta, timezone
from typing import Literal

Period = Literal["daily", "weekly", "monthly", "all-time"]


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Naive datetimes are assumed to already be UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def day_start(dt: datetime) -> datetime:
    """Truncate a datetime to midnight UTC of the same day."""
    return ensure_utc(dt).replace(hour=0, minute=0, second=0, microsecond=0)


def days_between(earlier: datetime, later: datetime) -> int:
    """Count calendar days between two datetimes (UTC, date granularity).

    Args:
        earlier: The first datetime.
        later: The second datetime.

    Returns:
        Whole days between the two UTC dates (negative if reversed).
    """
    return (day_start(later) - day_start(earlier)).days


def days_ago(days: int) -> datetime:
    """Get a datetime N days ago from now."""
    return utc_now() - timedelta(days=days)


def period_start(period: Period, reference: datetime | None = None) -> datetime | None:
    """Get the start of a leaderboard period.

    Weeks start on Sunday. The all-time period has no start.

    Args:
        period: One of daily, weekly, monthly, all-time.
        reference: Point in time inside the period (defaults to now).

    Returns:
        Timezone-aware UTC datetime, or None for all-time.
    """
    ref = day_start(reference or utc_now())

    if period == "daily":
        return ref
    if period == "weekly":
        # Monday is 0 in weekday(); shift so Sunday is the first day
        return ref - timedelta(days=(ref.weekday() + 1) % 7)
    if period == "monthly":
        return ref.replace(day=1)
    return None


def format_iso(dt: datetime | None) -> str | None:
    """Format a datetime as ISO 8601 string.

    Args:
        dt: Datetime to format.

    Returns:
        ISO 8601 formatted string or None.
    """
    if dt is None:
        return None

    return ensure_utc(dt).isoformat()


def parse_iso(iso_string: str | None) -> datetime | None:
    """Parse an ISO 8601 datetime string.

    Args:
        iso_string: ISO 8601 formatted string, "Z" suffix allowed.

    Returns:
        Timezone-aware UTC datetime or None.

    Raises:
        ValueError: If the string is not ISO 8601.
    """
    if iso_string is None:
        return None

    dt = datetime.fromisoformat(iso_string.replace("Z", "+00:00"))
    return ensure_utc(dt)
