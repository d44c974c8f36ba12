# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learner progress and competency mastery tables."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.utils.datetime import format_iso, utc_now

MASTERY_HISTORY_LIMIT = 50
SNAPSHOT_HISTORY_LIMIT = 10


class LearnerProgress(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Progress of one user through one lesson."""

    __tablename__ = "learner_progress"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    lesson_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("lessons.id", ondelete="CASCADE"),
        nullable=False,
    )
    course_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="not-started")
    completion_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    time_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_accessed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (UniqueConstraint("user_id", "lesson_id", name="uq_progress_user_lesson"),)

    def update_progress(
        self,
        completion_percentage: float,
        time_spent: int,
        at: datetime | None = None,
    ) -> bool:
        """Merge a progress report into this record.

        Completion never goes backwards and time accumulates. Reaching
        100 percent completes the lesson.

        Args:
            completion_percentage: Reported completion (0-100).
            time_spent: Additional seconds spent.
            at: When the report happened (defaults to now).

        Returns:
            True if this report completed the lesson.
        """
        now = at or utc_now()
        was_completed = self.status == "completed"

        self.completion_percentage = max(
            self.completion_percentage or 0.0,
            min(100.0, max(0.0, completion_percentage)),
        )
        self.time_spent = (self.time_spent or 0) + max(0, time_spent)
        self.last_accessed_at = now

        if self.completion_percentage >= 100:
            self.status = "completed"
            if self.completed_at is None:
                self.completed_at = now
        elif self.status != "completed":
            self.status = "in-progress"

        return not was_completed and self.status == "completed"

    def mark_completed(self, at: datetime | None = None) -> None:
        """Force the lesson to the completed state."""
        now = at or utc_now()
        self.status = "completed"
        self.completion_percentage = 100.0
        self.completed_at = self.completed_at or now
        self.last_accessed_at = now


class LearnerMastery(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Mastery estimate of one user for one competency.

    ``history`` holds the most recent mastery events, newest last, each as
    ``{"timestamp", "mastery", "event_type", "evidence"}``.
    """

    __tablename__ = "learner_mastery"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    competency_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("competencies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    mastery: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    last_assessed: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False, index=True
    )
    decay_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.05)
    history: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)

    __table_args__ = (
        UniqueConstraint("user_id", "competency_id", name="uq_mastery_user_competency"),
    )

    def add_history_event(
        self,
        event_type: str,
        evidence: dict[str, Any] | None = None,
        at: datetime | None = None,
    ) -> None:
        """Append a history event with the current mastery value.

        The list is reassigned rather than mutated so the JSONB change is
        picked up by the unit of work.
        """
        event = {
            "timestamp": format_iso(at or utc_now()),
            "mastery": self.mastery,
            "event_type": event_type,
            "evidence": evidence or {},
        }
        self.history = [*(self.history or []), event][-MASTERY_HISTORY_LIMIT:]

    def snapshot(self) -> dict[str, Any]:
        """Return a serialisable view with the last few history events."""
        return {
            "competency_id": self.competency_id,
            "mastery": self.mastery,
            "confidence": self.confidence,
            "last_assessed": self.last_assessed,
            "history": list((self.history or [])[-SNAPSHOT_HISTORY_LIMIT:]),
        }
