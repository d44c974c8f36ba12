# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification channels.

- InAppChannel: the stored notification is shown in the app
- EmailChannel: queued for the external mail worker
- PushChannel: queued for the external push worker

Usage:
    from src.infrastructure.notifications.channels import InAppChannel

    in_app = InAppChannel()
    in_app.set_session(session)
    if in_app.is_enabled_for_preference(preference, "achievement"):
        result = await in_app.send(payload)
"""

from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryStatus,
    NotificationPayload,
)
from src.infrastructure.notifications.channels.email import EmailChannel
from src.infrastructure.notifications.channels.in_app import InAppChannel
from src.infrastructure.notifications.channels.push import PushChannel

__all__ = [
    # Base types
    "BaseChannel",
    "ChannelResult",
    "ChannelType",
    "DeliveryStatus",
    "NotificationPayload",
    # Channels
    "EmailChannel",
    "InAppChannel",
    "PushChannel",
]
