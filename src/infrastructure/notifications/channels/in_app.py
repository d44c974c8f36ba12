# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-app notification channel.

The stored notification row is what the notification center shows, so
in-app delivery completes as soon as the row exists. The channel flushes
the session to make sure it does.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    NotificationPayload,
)


class InAppChannel(BaseChannel):
    """In-app notification channel.

    This channel requires a database session to be set before
    sending notifications via set_session().
    """

    def __init__(self) -> None:
        super().__init__()
        self._session: AsyncSession | None = None

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.IN_APP

    def set_session(self, session: AsyncSession) -> None:
        """Set the database session for this channel.

        Args:
            session: Async database session.
        """
        self._session = session

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Make the stored notification visible in-app.

        Args:
            payload: The notification payload.

        Returns:
            SENT result, or FAILED when no session is set.
        """
        if self._session is None:
            return self.create_failure_result(
                "Database session not set. Call set_session() first."
            )

        await self._session.flush()

        self.logger.info(
            "Delivered in-app notification %s to user %s",
            payload.notification_id,
            payload.recipient_id,
        )
        return self.create_success_result(
            message_id=payload.notification_id,
            metadata={"notification_id": payload.notification_id},
        )
