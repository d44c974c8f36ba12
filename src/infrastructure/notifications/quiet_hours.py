# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Quiet hours evaluation.

Quiet hours are stored as ``{"enabled", "start", "end", "timezone"}``
with ``HH:MM`` clock strings in the user's timezone. A start later than
the end means the window wraps midnight (22:00-08:00).
"""

import logging
from datetime import datetime, time, timedelta
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Asia/Bangkok"


def parse_clock(value: str) -> time:
    """Parse an ``HH:MM`` string.

    Raises:
        ValueError: If the value is not a valid clock time.
    """
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def _zone(name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(name or DEFAULT_TIMEZONE)
    except ZoneInfoNotFoundError:
        logger.warning("Unknown timezone %s, using %s", name, DEFAULT_TIMEZONE)
        return ZoneInfo(DEFAULT_TIMEZONE)


def is_in_quiet_hours(quiet_hours: dict[str, Any] | None, now: datetime | None = None) -> bool:
    """Check if ``now`` falls inside the user's quiet hours.

    Args:
        quiet_hours: Quiet hours settings.
        now: Point in time to check (defaults to now).

    Returns:
        True if quiet hours are enabled and active.
    """
    if not quiet_hours or not quiet_hours.get("enabled"):
        return False

    start = parse_clock(quiet_hours.get("start", "22:00"))
    end = parse_clock(quiet_hours.get("end", "08:00"))
    local = ensure_utc(now or utc_now()).astimezone(_zone(quiet_hours.get("timezone")))
    current = local.time().replace(second=0, microsecond=0)

    if start == end:
        return False
    if start > end:
        # Window spans midnight
        return current >= start or current < end
    return start <= current < end


def quiet_hours_end(quiet_hours: dict[str, Any], now: datetime | None = None) -> datetime:
    """Next moment the quiet hours end, in UTC.

    Returns today's end time when it is still ahead, otherwise
    tomorrow's.

    Args:
        quiet_hours: Quiet hours settings.
        now: Reference time (defaults to now).

    Returns:
        Timezone-aware UTC datetime.
    """
    zone = _zone(quiet_hours.get("timezone"))
    local = ensure_utc(now or utc_now()).astimezone(zone)
    end = parse_clock(quiet_hours.get("end", "08:00"))

    candidate = local.replace(hour=end.hour, minute=end.minute, second=0, microsecond=0)
    if candidate <= local:
        candidate = candidate + timedelta(days=1)
    return ensure_utc(candidate)
