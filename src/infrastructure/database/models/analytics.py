# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Raw analytics events and periodic aggregates."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.utils.datetime import utc_now


class AnalyticsEvent(UUIDPrimaryKeyMixin, Base):
    """A tracked learning or system event."""

    __tablename__ = "analytics_events"

    user_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), index=True)
    session_id: Mapped[str | None] = mapped_column(String(128), index=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    event_category: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    event_data: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    # "metadata" is reserved on declarative classes
    event_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONB, nullable=False, default=dict
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False, index=True
    )


class AnalyticsAggregate(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Metrics rolled up per key and period.

    ``aggregate_type`` is one of user_daily, course_daily, system_hourly or
    leaderboard_daily; ``aggregate_key`` is a user id, course id or
    ``"global"``.
    """

    __tablename__ = "analytics_aggregates"

    aggregate_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    aggregate_key: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    period_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    period_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    granularity: Mapped[str] = mapped_column(String(10), nullable=False)
    metrics: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)

    __table_args__ = (
        UniqueConstraint(
            "aggregate_type",
            "aggregate_key",
            "period_start",
            "granularity",
            name="uq_analytics_aggregate",
        ),
    )
