# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for the adaptive LMS.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime operations
"""

from src.utils.datetime import (
    day_start,
    days_ago,
    days_between,
    ensure_utc,
    format_iso,
    parse_iso,
    period_start,
    utc_now,
)
from src.utils.logging import bind_context, clear_context, get_logger, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    # Datetime
    "utc_now",
    "ensure_utc",
    "day_start",
    "days_between",
    "days_ago",
    "period_start",
    "format_iso",
    "parse_iso",
]
