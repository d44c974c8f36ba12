# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Push notification channel.

Push messages are handed to an external push worker. Tokens are
registered per device as ``{"token", "platform", "registered_at"}``
entries in the user's push channel settings.
"""

from src.infrastructure.database.models.notification import NotificationPreference
from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    NotificationPayload,
)


class PushChannel(BaseChannel):
    """Push channel that queues messages for the push worker.

    Urgent and high priority notifications are flagged so the worker can
    send them with high delivery priority.
    """

    HIGH_PRIORITIES = ("high", "urgent")

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.PUSH

    def is_enabled_for_preference(
        self,
        preference: NotificationPreference | None,
        notification_type: str,
    ) -> bool:
        """Push additionally needs at least one registered token."""
        if not self.channel_settings(preference).get("tokens"):
            return False
        return super().is_enabled_for_preference(preference, notification_type)

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Queue a push message for every registered token.

        Args:
            payload: The notification payload.

        Returns:
            PENDING result, or SKIPPED without tokens.
        """
        if not payload.push_tokens:
            return self.create_skipped_result("No push tokens registered")

        self.logger.debug(
            "Queued push notification %s for %d devices",
            payload.notification_id,
            len(payload.push_tokens),
        )
        return self.create_pending_result(
            metadata={
                "token_count": len(payload.push_tokens),
                "high_priority": payload.priority in self.HIGH_PRIORITIES,
            }
        )
