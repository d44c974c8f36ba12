# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification system.

Delivers bilingual notifications to learners through:
- In-app notifications (database records)
- Email (queued for an external mail worker)
- Push (queued for an external push worker)

Key Components:
- NotificationService: preference-aware sending, reading and jobs
- Channels: InAppChannel, EmailChannel, PushChannel
- quiet_hours: quiet window evaluation in the user's timezone

Usage:
    from src.infrastructure.notifications import NotificationService

    service = NotificationService(db)
    await service.notify_level_up(user_id, level=3)

    # From a job runner
    await service.process_scheduled_notifications()
    await service.cleanup_expired_notifications()
"""

from src.infrastructure.notifications.channels import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryStatus,
    EmailChannel,
    InAppChannel,
    NotificationPayload,
    PushChannel,
)
from src.infrastructure.notifications.quiet_hours import is_in_quiet_hours, quiet_hours_end
from src.infrastructure.notifications.service import (
    NotificationNotFoundError,
    NotificationService,
    NotificationServiceError,
)

__all__ = [
    # Service
    "NotificationService",
    "NotificationServiceError",
    "NotificationNotFoundError",
    "is_in_quiet_hours",
    "quiet_hours_end",
    # Channel types
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
