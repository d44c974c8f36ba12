# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Quiz API models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.models.common import BilingualText, BilingualTextUpdate, LanguageCode
from src.models.gamification import RewardResponse


class QuizItemType(str, Enum):
    MCQ = "mcq"
    MULTI_SELECT = "multi-select"
    SHORT_ANSWER = "short-answer"


class QuizOption(BaseModel):
    id: str = Field(min_length=1, max_length=50)
    text: BilingualText
    correct: bool = False


# =============================================================================
# Items
# =============================================================================


class QuizItemCreateRequest(BaseModel):
    """Create a quiz item."""

    item_type: QuizItemType
    stem: BilingualText
    options: list[QuizOption] = Field(default_factory=list)
    correct_answer: str | None = Field(default=None, max_length=500)
    explanation: BilingualText | None = None
    competency_id: str
    difficulty: int = Field(default=3, ge=1, le=5)
    tags: list[str] = Field(default_factory=list)


class QuizItemUpdateRequest(BaseModel):
    """Partial item update; the merged item is re-validated."""

    stem: BilingualTextUpdate | None = None
    options: list[QuizOption] | None = None
    correct_answer: str | None = Field(default=None, max_length=500)
    explanation: BilingualTextUpdate | None = None
    difficulty: int | None = Field(default=None, ge=1, le=5)
    tags: list[str] | None = None


class QuizItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    item_type: str
    stem: dict[str, Any]
    options: list[dict[str, Any]]
    correct_answer: str | None
    explanation: dict[str, Any]
    competency_id: str
    difficulty: int
    tags: list[str]


# =============================================================================
# Quizzes
# =============================================================================


class QuizConfig(BaseModel):
    item_count: int = Field(default=10, ge=1)
    time_limit: int | None = Field(default=None, ge=1, description="Minutes")
    attempts: int = Field(default=3, ge=1)
    randomize: bool = True
    partial_credit: bool = False


class QuizCreateRequest(BaseModel):
    """Create a quiz over a pool of items."""

    title: BilingualText
    lesson_id: str | None = None
    course_id: str | None = None
    items: list[str] = Field(min_length=1)
    config: QuizConfig = Field(default_factory=QuizConfig)

    @model_validator(mode="after")
    def check_pool_size(self) -> "QuizCreateRequest":
        if len(self.items) < self.config.item_count:
            raise ValueError(
                f"Quiz needs at least {self.config.item_count} items, got {len(self.items)}"
            )
        return self


class QuizUpdateRequest(BaseModel):
    title: BilingualTextUpdate | None = None
    items: list[str] | None = Field(default=None, min_length=1)
    config: QuizConfig | None = None
    published: bool | None = None


class QuizResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: dict[str, Any]
    lesson_id: str | None
    course_id: str | None
    items: list[str]
    config: dict[str, Any]
    published: bool
    created_at: datetime


class PreparedQuizOption(BaseModel):
    id: str
    text: str


class PreparedQuizItem(BaseModel):
    id: str
    item_type: str
    stem: str
    competency_id: str
    difficulty: int
    options: list[PreparedQuizOption] | None = None


class PreparedQuizResponse(BaseModel):
    """A quiz ready to be taken, without answers."""

    id: str
    title: str
    config: dict[str, Any]
    items: list[PreparedQuizItem]
    attempts_used: int
    attempts_remaining: int


class StartQuizRequest(BaseModel):
    language: LanguageCode = "th"


# =============================================================================
# Attempts
# =============================================================================


class QuizAnswer(BaseModel):
    item_id: str
    response: str | list[str]
    hints_used: int = Field(default=0, ge=0)
    time_spent_ms: int = Field(default=0, ge=0)


class QuizSubmitRequest(BaseModel):
    """Answers for one attempt."""

    responses: list[QuizAnswer] = Field(min_length=1)
    started_at: datetime | None = None
    device_id: str | None = Field(default=None, max_length=128)


class GradedResponseModel(BaseModel):
    item_id: str
    response: str | list[str] | None
    correct: bool
    points: float
    hints_used: int
    time_spent_ms: int


class QuizScoreModel(BaseModel):
    earned: float
    possible: float
    percentage: float


class QuizResultResponse(BaseModel):
    """Outcome of grading an attempt."""

    attempt_id: str
    attempt_number: int
    score: QuizScoreModel
    passed: bool
    perfect: bool
    responses: list[GradedResponseModel]
    mastery_updated: bool
    gamification: RewardResponse | None = None


class QuizStatisticsResponse(BaseModel):
    attempt_count: int
    best_score: float | None
    last_score: float | None
    average_score: float | None


class QuizAttemptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    quiz_id: str
    attempt_number: int
    responses: list[dict[str, Any]]
    points_earned: float
    points_possible: float
    percentage: float
    passed: bool
    started_at: datetime
    submitted_at: datetime
    device_id: str | None
    sync_status: str


class ItemAnalytics(BaseModel):
    item_id: str
    responses: int
    correct_rate: float


class QuizAnalyticsResponse(BaseModel):
    """Aggregate results of a quiz for authors."""

    quiz_id: str
    total_attempts: int
    unique_users: int
    pass_rate: float
    average_score: float
    items: list[ItemAnalytics]
