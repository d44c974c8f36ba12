# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning path, lesson progress and recommendation API models."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from src.models.mastery import CompetencyRecommendationResponse

PathStatus = Literal["locked", "available", "in-progress", "completed"]
Priority = Literal["high", "medium", "low"]


# =============================================================================
# Lesson progress
# =============================================================================


class LessonProgressUpdateRequest(BaseModel):
    """Progress report for a lesson."""

    lesson_id: str
    completion_percentage: float = Field(ge=0, le=100)
    time_spent: int = Field(gt=0, description="Seconds spent since the last report")


class LessonProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lesson_id: str
    course_id: str
    status: str
    completion_percentage: float
    time_spent: int
    last_accessed_at: datetime
    completed_at: datetime | None = None


class RecentActivityResponse(BaseModel):
    activity: list[LessonProgressResponse]
    total: int


# =============================================================================
# Learning path
# =============================================================================


class PathCompetencyResponse(BaseModel):
    competency_id: str
    code: str
    name: str
    mastery: float
    status: str


class LearningPathItemResponse(BaseModel):
    """A lesson on the learner's path, localised."""

    lesson_id: str
    lesson_type: str
    title: str
    module_id: str
    module_title: str
    order: int
    status: PathStatus
    reason: str
    prerequisites_met: bool
    competencies: list[PathCompetencyResponse]
    estimated_minutes: int
    difficulty: int


class LearningPathResponse(BaseModel):
    course_id: str
    language: str
    total: int
    items: list[LearningPathItemResponse]


class NextLessonResponse(BaseModel):
    """The lesson to study next, or a message when none is available."""

    lesson: dict[str, Any] | None = None
    reason: str | None = None
    priority: Priority | None = None
    competencies_to_learn: list[str] = Field(default_factory=list)
    message: str | None = None


class CourseCompletionResponse(BaseModel):
    course_id: str
    total: int
    completed: int
    in_progress: int
    available: int
    locked: int
    completion_percentage: float


class RecommendedContentResponse(BaseModel):
    course_id: str
    language: str
    next_lessons: list[LearningPathItemResponse]
    review_lessons: list[LearningPathItemResponse]
    next_competencies: list[CompetencyRecommendationResponse]
    remediation: list[CompetencyRecommendationResponse]
