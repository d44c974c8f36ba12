# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""AI tutor domain package.

This package provides:
- Lesson-grounded tutor prompts
- TutorService for conversations and feedback
"""

from src.domains.tutor.prompts import (
    EXCERPT_LENGTH,
    HISTORY_LIMIT,
    build_messages,
    lesson_citations,
    lesson_grounding,
    system_prompt,
)
from src.domains.tutor.service import (
    ConversationAccessDeniedError,
    ConversationNotFoundError,
    TutorLessonNotFoundError,
    TutorMessageNotFoundError,
    TutorService,
    TutorServiceError,
    TutorUnavailableError,
)

__all__ = [
    "EXCERPT_LENGTH",
    "HISTORY_LIMIT",
    "build_messages",
    "lesson_citations",
    "lesson_grounding",
    "system_prompt",
    "TutorService",
    "TutorServiceError",
    "ConversationNotFoundError",
    "ConversationAccessDeniedError",
    "TutorLessonNotFoundError",
    "TutorMessageNotFoundError",
    "TutorUnavailableError",
]
