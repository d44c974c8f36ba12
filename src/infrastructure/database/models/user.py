# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User accounts and device sessions."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.utils.datetime import utc_now


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Learner, author or admin account.

    Profile fields are flattened onto the user row: display name,
    preferred language (th/en), IANA timezone, daily study budget and
    whether the user appears on public leaderboards.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="learner")
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    language: Mapped[str] = mapped_column(String(2), nullable=False, default="th")
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="Asia/Bangkok")
    daily_time_budget_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    leaderboard_opt_in: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    @property
    def is_admin(self) -> bool:
        """Check if user is an admin."""
        return self.role == "admin"

    @property
    def is_author(self) -> bool:
        """Check if user can author content."""
        return self.role in ("author", "admin")

    def __repr__(self) -> str:
        return f"<User {self.email} role={self.role}>"


class DeviceSession(UUIDPrimaryKeyMixin, Base):
    """A logged-in device holding a refresh token.

    Only the SHA-256 hash of the refresh token is stored.
    """

    __tablename__ = "device_sessions"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    device_id: Mapped[str] = mapped_column(String(128), nullable=False)
    device_name: Mapped[str | None] = mapped_column(String(200))
    platform: Mapped[str] = mapped_column(String(20), nullable=False, default="web")
    refresh_token_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    last_active_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (UniqueConstraint("user_id", "device_id", name="uq_device_session"),)


class EmailVerificationCode(UUIDPrimaryKeyMixin, Base):
    """One-time code proving ownership of an account email.

    At most one live code exists per email; issuing a new one deletes the
    previous. The external mail worker delivers rows whose ``sent_at`` is
    empty, in ``language``.
    """

    __tablename__ = "email_verification_codes"

    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(6), nullable=False)
    language: Mapped[str] = mapped_column(String(2), nullable=False, default="th")
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utc_now()) >= self.expires_at
