# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course content tables: courses, modules, lessons and competencies.

Bilingual text is stored as JSONB objects of the form
``{"th": "...", "en": "..."}`` where Thai is required and English is
optional. Lesson and competency prerequisite lists are JSONB arrays of ids
so that the DAG checks can load a course graph in one query.
"""

from typing import Any

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Course(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A published or draft course."""

    __tablename__ = "courses"

    slug: Mapped[str] = mapped_column(String(120), unique=True, nullable=False, index=True)
    title: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    description: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    difficulty: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    estimated_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    tags: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    created_by: Mapped[str | None] = mapped_column(UUID(as_uuid=False))

    def __repr__(self) -> str:
        return f"<Course {self.slug} published={self.published}>"


class CourseModule(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """An ordered section of a course."""

    __tablename__ = "modules"

    course_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    description: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Lesson(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A single lesson inside a module.

    ``content`` maps a language code to ``{"body", "video_url",
    "attachments"}``. ``course_id`` is denormalised from the module so
    progress and analytics queries avoid a join.
    """

    __tablename__ = "lessons"

    module_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("modules.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    course_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    lesson_type: Mapped[str] = mapped_column(String(20), nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    content: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    difficulty: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    estimated_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    prerequisites: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    tags: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    learning_objectives: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    accessibility: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    competencies: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class Competency(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A skill node in a course's prerequisite DAG."""

    __tablename__ = "competencies"

    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    course_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    description: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    prerequisites: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    domain: Mapped[str | None] = mapped_column(String(100))
    difficulty: Mapped[int] = mapped_column(Integer, nullable=False, default=3)

    def __repr__(self) -> str:
        return f"<Competency {self.code}>"
