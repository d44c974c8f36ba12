# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Email notification channel.

Emails are not sent in-process. The channel validates that the user has
a verified address and records the delivery as pending; an external mail
worker picks up notifications whose email status is pending.
"""

from src.infrastructure.database.models.notification import NotificationPreference
from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    NotificationPayload,
)


class EmailChannel(BaseChannel):
    """Email channel that queues messages for the mail worker."""

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.EMAIL

    def is_enabled_for_preference(
        self,
        preference: NotificationPreference | None,
        notification_type: str,
    ) -> bool:
        """Email additionally needs a verified address."""
        settings = self.channel_settings(preference)
        if not settings.get("verified") or not settings.get("address"):
            return False
        return super().is_enabled_for_preference(preference, notification_type)

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Queue an email for the mail worker.

        Args:
            payload: The notification payload.

        Returns:
            PENDING result, or SKIPPED without a recipient address.
        """
        if not payload.recipient_email:
            return self.create_skipped_result("No verified email address")

        self.logger.debug(
            "Queued email notification %s for %s",
            payload.notification_id,
            payload.recipient_email,
        )
        return self.create_pending_result(
            metadata={"address": payload.recipient_email, "language": payload.recipient_language}
        )
