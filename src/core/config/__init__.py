# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for the adaptive LMS.

Settings are Pydantic models loaded from environment variables.

Example:
    >>> from src.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.learning.pass_threshold)
    70.0
"""

from src.core.config.settings import (
    APISettings,
    CORSSettings,
    DatabaseSettings,
    JWTSettings,
    LearningSettings,
    LLMSettings,
    NotificationSettings,
    RateLimitSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "DatabaseSettings",
    "LLMSettings",
    "JWTSettings",
    "RateLimitSettings",
    "CORSSettings",
    "LearningSettings",
    "NotificationSettings",
    "APISettings",
]
