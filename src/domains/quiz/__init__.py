# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Quiz domain package.

This package provides:
- Item validation and grading rules
- QuizService for authoring, delivery and graded attempts
"""

from src.domains.quiz.grading import (
    QuizDefinitionError,
    competency_performance,
    grade_item,
    prepare_quiz_for_user,
    quiz_statistics,
    score_responses,
    validate_item_definition,
)
from src.domains.quiz.service import (
    MaxAttemptsReachedError,
    QuizItemNotFoundError,
    QuizNotFoundError,
    QuizService,
    QuizServiceError,
    QuizValidationError,
    summarize_attempts,
)

__all__ = [
    "QuizDefinitionError",
    "competency_performance",
    "grade_item",
    "prepare_quiz_for_user",
    "quiz_statistics",
    "score_responses",
    "validate_item_definition",
    "QuizService",
    "QuizServiceError",
    "QuizNotFoundError",
    "QuizItemNotFoundError",
    "QuizValidationError",
    "MaxAttemptsReachedError",
    "summarize_attempts",
]
