# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base classes for notification channels.

This module defines the abstract base class and shared types
for all notification channels. Each channel handles delivery
through a specific medium (in-app, push, email).

A channel decides whether it is enabled for a user's preferences and
returns a ChannelResult per send; the notification service stores those
results in the notification's delivery status.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from src.infrastructure.database.models.notification import (
    NotificationPreference,
    default_channels,
    default_type_settings,
)
from src.utils.datetime import utc_now


class ChannelType(str, Enum):
    """Available notification channel types."""

    IN_APP = "in_app"
    EMAIL = "email"
    PUSH = "push"


class DeliveryStatus(str, Enum):
    """Delivery status for a channel."""

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class NotificationPayload:
    """Payload for sending a notification.

    Attributes:
        notification_id: Stored notification ID.
        notification_type: Type of notification.
        title: Bilingual title ``{"th", "en"}``.
        message: Bilingual message ``{"th", "en"}``.
        recipient_id: User ID of the recipient.
        recipient_language: Preferred language code.
        recipient_email: Verified email address (for email channel).
        push_tokens: Registered push tokens (for push channel).
        data: Additional data for the notification.
        action_url: URL to open when notification is clicked.
        priority: low, medium, high or urgent.
    """

    notification_id: str
    notification_type: str
    title: dict[str, Any]
    message: dict[str, Any]
    recipient_id: str
    recipient_language: str = "th"
    recipient_email: str | None = None
    push_tokens: list[dict[str, Any]] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    action_url: str | None = None
    priority: str = "medium"


@dataclass
class ChannelResult:
    """Result of a channel send operation.

    Attributes:
        channel: Which channel was used.
        status: Delivery status.
        message_id: External message ID (if available).
        error_message: Error message if failed or skipped.
        sent_at: When the message was handed over.
        metadata: Additional result metadata.
    """

    channel: ChannelType
    status: DeliveryStatus
    message_id: str | None = None
    error_message: str | None = None
    sent_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSONB storage."""
        return {
            "status": self.status.value,
            "message_id": self.message_id,
            "error": self.error_message,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "metadata": self.metadata,
        }


class BaseChannel(ABC):
    """Abstract base class for notification channels.

    Subclasses implement ``send`` and may tighten
    ``is_enabled_for_preference`` with channel specific requirements.
    """

    def __init__(self) -> None:
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    @abstractmethod
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        ...

    @abstractmethod
    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Send a notification through this channel.

        Args:
            payload: The notification payload to send.

        Returns:
            ChannelResult with delivery status.
        """
        ...

    def channel_settings(self, preference: NotificationPreference | None) -> dict[str, Any]:
        """This channel's entry in the preference ``channels`` map."""
        channels = preference.channels if preference and preference.channels else default_channels()
        return channels.get(self.channel_type.value) or {}

    def is_enabled_for_preference(
        self,
        preference: NotificationPreference | None,
        notification_type: str,
    ) -> bool:
        """Check if this channel should carry a notification type.

        The channel must be enabled globally and for the type. Types
        missing from the user's settings fall back to the defaults.

        Args:
            preference: User's notification preference (None for defaults).
            notification_type: Notification type being sent.

        Returns:
            True if the channel is enabled.
        """
        if not self.channel_settings(preference).get("enabled", False):
            return False

        type_settings = preference.type_settings if preference and preference.type_settings else {}
        toggles = type_settings.get(notification_type)
        if toggles is None:
            toggles = default_type_settings().get(notification_type, {})
        return bool(toggles.get(self.channel_type.value, True))

    def create_success_result(
        self,
        message_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ChannelResult:
        """Create a result with SENT status."""
        return ChannelResult(
            channel=self.channel_type,
            status=DeliveryStatus.SENT,
            message_id=message_id,
            sent_at=utc_now(),
            metadata=metadata or {},
        )

    def create_pending_result(
        self,
        metadata: dict[str, Any] | None = None,
    ) -> ChannelResult:
        """Create a result with PENDING status for an external worker."""
        return ChannelResult(
            channel=self.channel_type,
            status=DeliveryStatus.PENDING,
            metadata=metadata or {},
        )

    def create_failure_result(
        self,
        error_message: str,
        metadata: dict[str, Any] | None = None,
    ) -> ChannelResult:
        """Create a result with FAILED status."""
        return ChannelResult(
            channel=self.channel_type,
            status=DeliveryStatus.FAILED,
            error_message=error_message,
            sent_at=utc_now(),
            metadata=metadata or {},
        )

    def create_skipped_result(self, reason: str) -> ChannelResult:
        """Create a result with SKIPPED status."""
        return ChannelResult(
            channel=self.channel_type,
            status=DeliveryStatus.SKIPPED,
            error_message=reason,
        )
