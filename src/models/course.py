# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course content API models.

Request models validate authoring input (slug format, code format,
difficulty range, at least one competency per lesson). Response models
carry the raw bilingual fields; learner-facing routes localise them.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.common import BilingualText, BilingualTextUpdate


class LessonType(str, Enum):
    """Kinds of lesson."""

    VIDEO = "video"
    READING = "reading"
    QUIZ = "quiz"
    PRACTICE = "practice"
    ASSIGNMENT = "assignment"


class LessonContentBlock(BaseModel):
    """Lesson content in one language."""

    body: str | None = None
    video_url: str | None = None
    attachments: list[str] = Field(default_factory=list)


class LessonContent(BaseModel):
    """Lesson content per language. Thai is required to publish."""

    th: LessonContentBlock | None = None
    en: LessonContentBlock | None = None


# =============================================================================
# Courses
# =============================================================================


class CourseCreateRequest(BaseModel):
    """Create a draft course."""

    slug: str = Field(min_length=1, max_length=120, pattern=r"^[a-zA-Z0-9-]+$")
    title: BilingualText
    description: BilingualText
    difficulty: int = Field(default=3, ge=1, le=5)
    estimated_hours: float = Field(default=0.0, ge=0)
    tags: list[str] = Field(default_factory=list)

    @field_validator("slug")
    @classmethod
    def lowercase_slug(cls, value: str) -> str:
        return value.lower()


class CourseUpdateRequest(BaseModel):
    """Partial course update."""

    slug: str | None = Field(default=None, min_length=1, max_length=120, pattern=r"^[a-zA-Z0-9-]+$")
    title: BilingualTextUpdate | None = None
    description: BilingualTextUpdate | None = None
    difficulty: int | None = Field(default=None, ge=1, le=5)
    estimated_hours: float | None = Field(default=None, ge=0)
    tags: list[str] | None = None

    @field_validator("slug")
    @classmethod
    def lowercase_slug(cls, value: str | None) -> str | None:
        return value.lower() if value else value


class CourseResponse(BaseModel):
    """Course details."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    slug: str
    title: dict[str, str | None]
    description: dict[str, str | None]
    published: bool
    difficulty: int
    estimated_hours: float
    tags: list[str]
    created_at: datetime
    updated_at: datetime


class CourseListResponse(BaseModel):
    courses: list[CourseResponse]
    total: int


# =============================================================================
# Modules
# =============================================================================


class ModuleCreateRequest(BaseModel):
    """Create a module inside a course."""

    course_id: str
    title: BilingualText
    description: BilingualText | None = None
    order: int = Field(default=0, ge=0)


class ModuleUpdateRequest(BaseModel):
    """Partial module update."""

    title: BilingualTextUpdate | None = None
    description: BilingualTextUpdate | None = None
    order: int | None = Field(default=None, ge=0)


class ModuleResponse(BaseModel):
    """Module details."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    course_id: str
    title: dict[str, str | None]
    description: dict[str, str | None]
    order: int


# =============================================================================
# Lessons
# =============================================================================


class LessonCreateRequest(BaseModel):
    """Create a lesson inside a module."""

    module_id: str
    title: BilingualText
    lesson_type: LessonType
    order: int = Field(default=0, ge=0)
    content: LessonContent = Field(default_factory=LessonContent)
    difficulty: int = Field(default=3, ge=1, le=5)
    estimated_minutes: int = Field(default=30, ge=1)
    prerequisites: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    learning_objectives: list[str] = Field(default_factory=list)
    accessibility: dict[str, str] = Field(default_factory=dict)
    competencies: list[str] = Field(min_length=1, description="At least one competency")


class LessonUpdateRequest(BaseModel):
    """Partial lesson update."""

    title: BilingualTextUpdate | None = None
    lesson_type: LessonType | None = None
    order: int | None = Field(default=None, ge=0)
    content: LessonContent | None = None
    difficulty: int | None = Field(default=None, ge=1, le=5)
    estimated_minutes: int | None = Field(default=None, ge=1)
    prerequisites: list[str] | None = None
    tags: list[str] | None = None
    learning_objectives: list[str] | None = None
    accessibility: dict[str, str] | None = None
    competencies: list[str] | None = Field(default=None, min_length=1)


class LessonResponse(BaseModel):
    """Lesson details."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    module_id: str
    course_id: str
    title: dict[str, str | None]
    lesson_type: str
    order: int
    content: dict
    difficulty: int
    estimated_minutes: int
    prerequisites: list[str]
    tags: list[str]
    learning_objectives: list[str]
    accessibility: dict
    competencies: list[str]
    published: bool


# =============================================================================
# Competencies
# =============================================================================


class CompetencyCreateRequest(BaseModel):
    """Create a competency in a course's skill graph."""

    code: str = Field(min_length=1, max_length=50, pattern=r"^[A-Za-z0-9_-]+$")
    course_id: str
    name: BilingualText
    description: BilingualText | None = None
    prerequisites: list[str] = Field(default_factory=list)
    domain: str | None = None
    difficulty: int = Field(default=3, ge=1, le=5)

    @field_validator("code")
    @classmethod
    def uppercase_code(cls, value: str) -> str:
        return value.upper()


class CompetencyUpdateRequest(BaseModel):
    """Partial competency update."""

    name: BilingualTextUpdate | None = None
    description: BilingualTextUpdate | None = None
    prerequisites: list[str] | None = None
    domain: str | None = None
    difficulty: int | None = Field(default=None, ge=1, le=5)


class CompetencyResponse(BaseModel):
    """Competency details."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    code: str
    course_id: str
    name: dict[str, str | None]
    description: dict[str, str | None]
    prerequisites: list[str]
    domain: str | None
    difficulty: int


class CourseDownloadResponse(BaseModel):
    """Everything a device needs to take a course offline."""

    course: CourseResponse
    modules: list[ModuleResponse]
    lessons: list[LessonResponse]
    competencies: list[CompetencyResponse]
    downloaded_at: datetime
