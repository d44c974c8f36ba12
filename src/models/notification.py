# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification API models."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

NotificationType = Literal[
    "achievement",
    "reminder",
    "announcement",
    "streak",
    "quiz_result",
    "course_update",
    "level_up",
]
NotificationPriority = Literal["low", "medium", "high", "urgent"]
DigestFrequency = Literal["realtime", "hourly", "daily", "weekly"]

CLOCK_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class NotificationResponse(BaseModel):
    """A notification as shown in the notification center."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    notification_type: str
    priority: str
    title: dict[str, Any]
    message: dict[str, Any]
    data: dict[str, Any]
    action_url: str | None
    channels: list[str]
    delivery_status: dict[str, Any]
    is_read: bool
    read_at: datetime | None
    scheduled_for: datetime | None
    sent_at: datetime | None
    expires_at: datetime | None
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int
    unread_count: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class QuietHours(BaseModel):
    """Quiet hours window in the user's timezone."""

    enabled: bool = False
    start: str = Field(default="22:00", pattern=CLOCK_PATTERN)
    end: str = Field(default="08:00", pattern=CLOCK_PATTERN)
    timezone: str = "Asia/Bangkok"


class ChannelToggle(BaseModel):
    enabled: bool


class EmailChannelUpdate(BaseModel):
    enabled: bool | None = None
    address: str | None = Field(default=None, max_length=255)


class ChannelPreferencesUpdate(BaseModel):
    in_app: ChannelToggle | None = None
    email: EmailChannelUpdate | None = None
    push: ChannelToggle | None = None


class NotificationPreferencesUpdateRequest(BaseModel):
    """Partial preference update.

    ``type_settings`` maps a notification type to per-channel toggles,
    for example ``{"streak": {"push": false}}``.
    """

    channels: ChannelPreferencesUpdate | None = None
    type_settings: dict[NotificationType, dict[Literal["in_app", "email", "push"], bool]] | None = None
    quiet_hours: QuietHours | None = None
    digest_frequency: DigestFrequency | None = None


class NotificationPreferencesResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    channels: dict[str, Any]
    type_settings: dict[str, Any]
    quiet_hours: dict[str, Any]
    digest_frequency: str


class PushTokenRequest(BaseModel):
    token: str = Field(min_length=1, max_length=500)
    platform: Literal["ios", "android", "web"]


class PushTokenDeleteRequest(BaseModel):
    token: str = Field(min_length=1, max_length=500)
