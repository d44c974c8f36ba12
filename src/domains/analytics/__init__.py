# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics domain package.

This package provides:
- Raw event tracking
- Daily learner and hourly system aggregates
- Learner, course and system reports
- Rule-based learning insights
"""

from src.domains.analytics.insights import (
    Insights,
    LearnerSnapshot,
    learning_insights,
    summarize_system_hours,
    summarize_user_days,
)
from src.domains.analytics.service import (
    API_REQUEST_EVENT,
    DEFAULT_RETENTION_DAYS,
    AnalyticsService,
    AnalyticsServiceError,
)

__all__ = [
    "API_REQUEST_EVENT",
    "DEFAULT_RETENTION_DAYS",
    "AnalyticsService",
    "AnalyticsServiceError",
    "Insights",
    "LearnerSnapshot",
    "learning_insights",
    "summarize_system_hours",
    "summarize_user_days",
]
