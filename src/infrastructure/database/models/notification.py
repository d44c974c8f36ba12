# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification and notification preference tables."""

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.utils.datetime import utc_now

NOTIFICATION_TYPES = (
    "achievement",
    "reminder",
    "announcement",
    "streak",
    "quiz_result",
    "course_update",
    "level_up",
)

# Per-type channel toggles applied when a user has not customised them
DEFAULT_TYPE_SETTINGS: dict[str, dict[str, bool]] = {
    "achievement": {"in_app": True, "email": True, "push": True},
    "reminder": {"in_app": True, "email": True, "push": True},
    "announcement": {"in_app": True, "email": True, "push": False},
    "streak": {"in_app": True, "email": False, "push": True},
    "quiz_result": {"in_app": True, "email": True, "push": True},
    "course_update": {"in_app": True, "email": True, "push": False},
    "level_up": {"in_app": True, "email": True, "push": True},
}


def default_channels() -> dict[str, Any]:
    """Channel settings for a new preference row."""
    return {
        "in_app": {"enabled": True},
        "email": {"enabled": True, "verified": False, "address": None},
        "push": {"enabled": True, "tokens": []},
    }


def default_type_settings() -> dict[str, dict[str, bool]]:
    """Copy of the per-type defaults."""
    return {key: dict(value) for key, value in DEFAULT_TYPE_SETTINGS.items()}


def default_quiet_hours() -> dict[str, Any]:
    """Quiet hours for a new preference row (disabled, 22:00-08:00 Bangkok)."""
    return {"enabled": False, "start": "22:00", "end": "08:00", "timezone": "Asia/Bangkok"}


class Notification(UUIDPrimaryKeyMixin, Base):
    """A notification addressed to one user.

    ``title`` and ``message`` are bilingual objects. ``delivery_status``
    maps a channel name to ``{"status", "sent_at", "error"}``.
    """

    __tablename__ = "notifications"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    notification_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="medium")
    title: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    message: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    action_url: Mapped[str | None] = mapped_column(String(500))
    channels: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    delivery_status: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    scheduled_for: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )


class NotificationPreference(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Delivery preferences of one user."""

    __tablename__ = "notification_preferences"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    channels: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, default=default_channels
    )
    type_settings: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, default=default_type_settings
    )
    quiet_hours: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, default=default_quiet_hours
    )
    digest_frequency: Mapped[str] = mapped_column(String(10), nullable=False, default="realtime")
