# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Adaptive learning domain package.

This package provides:
- Learning path construction with prerequisite gating
- Next-lesson scoring
- AdaptiveService tying progress and mastery together
"""

from src.domains.adaptive.path import (
    NO_LESSONS_AVAILABLE,
    NextLesson,
    PathCompetency,
    PathItem,
    build_learning_path,
    choose_next_lesson,
    completion_summary,
    lesson_prerequisites_met,
    priority_for_score,
    score_lesson,
    suggest_lessons,
)
from src.domains.adaptive.service import (
    AdaptiveCourseNotFoundError,
    AdaptiveService,
    AdaptiveServiceError,
)

__all__ = [
    "NO_LESSONS_AVAILABLE",
    "NextLesson",
    "PathCompetency",
    "PathItem",
    "build_learning_path",
    "choose_next_lesson",
    "completion_summary",
    "lesson_prerequisites_met",
    "priority_for_score",
    "score_lesson",
    "suggest_lessons",
    "AdaptiveService",
    "AdaptiveServiceError",
    "AdaptiveCourseNotFoundError",
]
