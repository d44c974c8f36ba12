# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Quiz items, quizzes and attempts."""

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.utils.datetime import utc_now

DEFAULT_QUIZ_CONFIG: dict[str, Any] = {
    "item_count": 10,
    "time_limit": None,
    "attempts": 3,
    "randomize": True,
    "partial_credit": False,
}


class QuizItem(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A single question.

    ``options`` is a list of ``{"id", "text": {th, en}, "correct"}``
    entries for mcq and multi-select items.
    """

    __tablename__ = "quiz_items"

    item_type: Mapped[str] = mapped_column(String(20), nullable=False)
    stem: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    options: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    correct_answer: Mapped[str | None] = mapped_column(String(500))
    explanation: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    competency_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("competencies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    difficulty: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    tags: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)


class Quiz(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A quiz drawing from a pool of items."""

    __tablename__ = "quizzes"

    title: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    lesson_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("lessons.id", ondelete="SET NULL"),
    )
    course_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), index=True)
    items: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    config: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, default=lambda: dict(DEFAULT_QUIZ_CONFIG)
    )
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    @property
    def max_attempts(self) -> int:
        """Attempts allowed per user."""
        return int((self.config or {}).get("attempts") or DEFAULT_QUIZ_CONFIG["attempts"])


class QuizAttempt(UUIDPrimaryKeyMixin, Base):
    """One graded submission of a quiz.

    ``responses`` holds ``{"item_id", "response", "correct",
    "time_spent_ms", "hints_used", "points_earned"}`` per answered item.
    """

    __tablename__ = "quiz_attempts"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    quiz_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("quizzes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False)
    responses: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    points_earned: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    points_possible: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False, index=True
    )
    device_id: Mapped[str | None] = mapped_column(String(128))
    sync_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")

    __table_args__ = (
        UniqueConstraint("user_id", "quiz_id", "attempt_number", name="uq_attempt_number"),
    )
