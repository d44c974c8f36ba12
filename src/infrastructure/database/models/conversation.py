# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""AI tutor conversations."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.utils.datetime import utc_now


class Conversation(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A tutor conversation, optionally grounded on a lesson.

    ``messages`` is a list of ``{"id", "role", "content", "timestamp",
    "citations", "rating"}`` in chronological order.
    """

    __tablename__ = "conversations"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    lesson_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), index=True)
    course_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False))
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    language: Mapped[str] = mapped_column(String(2), nullable=False, default="th")
    tutor_mode: Mapped[str] = mapped_column(String(20), nullable=False, default="explain")
    messages: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    last_message_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False, index=True
    )
