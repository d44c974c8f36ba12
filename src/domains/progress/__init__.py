# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Lesson progress domain package."""

from src.domains.progress.service import (
    ProgressLessonNotFoundError,
    ProgressNotFoundError,
    ProgressService,
    ProgressServiceError,
)

__all__ = [
    "ProgressService",
    "ProgressServiceError",
    "ProgressLessonNotFoundError",
    "ProgressNotFoundError",
]
