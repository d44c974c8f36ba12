# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification service for orchestrating notification delivery.

This service handles the complete notification flow:
1. Loading the user's preferences (or the defaults)
2. Choosing channels per notification type
3. Deferring delivery until quiet hours end
4. Storing the notification and sending through the chosen channels

Scheduled notifications are delivered later by
process_scheduled_notifications(), which any job runner can call.
"""

import logging
from datetime import timedelta
from typing import Any

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import Settings, get_settings
from src.infrastructure.database.models import Notification, NotificationPreference, User
from src.infrastructure.database.models.notification import (
    default_channels,
    default_quiet_hours,
    default_type_settings,
)
from src.infrastructure.notifications.channels import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    EmailChannel,
    InAppChannel,
    NotificationPayload,
    PushChannel,
)
from src.infrastructure.notifications.quiet_hours import is_in_quiet_hours, quiet_hours_end
from src.models.notification import NotificationPreferencesUpdateRequest
from src.utils.datetime import format_iso, utc_now

logger = logging.getLogger(__name__)


class NotificationServiceError(Exception):
    """Base exception for notification service errors."""

    pass


class NotificationNotFoundError(NotificationServiceError):
    """Raised when a notification is not found for the user."""

    pass


class NotificationService:
    """Service for sending and managing user notifications.

    Attributes:
        db: Async database session.
        channels: Available channels keyed by type.
    """

    def __init__(self, db: AsyncSession, settings: Settings | None = None) -> None:
        self.db = db
        self._settings = (settings or get_settings()).notification

        self._in_app = InAppChannel()
        self._in_app.set_session(db)

        self.channels: dict[ChannelType, BaseChannel] = {
            ChannelType.IN_APP: self._in_app,
            ChannelType.EMAIL: EmailChannel(),
            ChannelType.PUSH: PushChannel(),
        }

    # =========================================================================
    # Sending
    # =========================================================================

    async def send_notification(
        self,
        user_id: str,
        notification_type: str,
        title: dict[str, str],
        message: dict[str, str],
        priority: str = "medium",
        data: dict[str, Any] | None = None,
        action_url: str | None = None,
    ) -> Notification | None:
        """Send a notification to a user.

        Channels come from the user's preferences. During quiet hours
        the notification is stored and scheduled for the end of the
        quiet window instead of being delivered.

        Args:
            user_id: Recipient user ID.
            notification_type: One of the notification types.
            title: Bilingual title.
            message: Bilingual message.
            priority: low, medium, high or urgent.
            data: Additional data.
            action_url: URL opened from the notification.

        Returns:
            The stored notification, or None when no channel is enabled.
        """
        preference = await self._get_preference(user_id)
        channels = self.select_channels(preference, notification_type)

        if not channels:
            logger.debug(
                "No enabled channels for user %s, type %s",
                user_id,
                notification_type,
            )
            return None

        now = utc_now()
        quiet_hours = preference.quiet_hours if preference else default_quiet_hours()
        scheduled_for = None
        if is_in_quiet_hours(quiet_hours, now):
            scheduled_for = quiet_hours_end(quiet_hours, now)

        notification = Notification(
            user_id=user_id,
            notification_type=notification_type,
            priority=priority,
            title=title,
            message=message,
            data=data or {},
            action_url=action_url,
            channels=[c.value for c in channels],
            delivery_status={c.value: {"status": "pending"} for c in channels},
            is_read=False,
            scheduled_for=scheduled_for,
            expires_at=now + timedelta(days=self._settings.expiration_days),
            created_at=now,
        )
        self.db.add(notification)
        await self.db.flush()

        if scheduled_for is None:
            await self._deliver(notification, preference)
        else:
            logger.info(
                "User %s in quiet hours, notification %s scheduled for %s",
                user_id,
                notification.id,
                format_iso(scheduled_for),
            )

        await self.db.commit()
        await self.db.refresh(notification)
        return notification

    def select_channels(
        self,
        preference: NotificationPreference | None,
        notification_type: str,
    ) -> list[ChannelType]:
        """Channels enabled for a notification type."""
        return [
            channel_type
            for channel_type, channel in self.channels.items()
            if channel.is_enabled_for_preference(preference, notification_type)
        ]

    async def notify_achievement_earned(
        self,
        user_id: str,
        achievement_name: dict[str, Any],
        reward: dict[str, Any] | None = None,
        achievement_id: str | None = None,
    ) -> Notification | None:
        """Tell a user they unlocked an achievement."""
        reward = reward or {}
        name_th = achievement_name.get("th", "")
        name_en = achievement_name.get("en") or name_th
        return await self.send_notification(
            user_id=user_id,
            notification_type="achievement",
            title={"th": "ปลดล็อกความสำเร็จ!", "en": "Achievement Unlocked!"},
            message={
                "th": f"คุณได้รับความสำเร็จ \"{name_th}\"",
                "en": f"You earned the \"{name_en}\" achievement",
            },
            priority="high",
            data={
                "achievement_id": achievement_id,
                "xp": reward.get("xp", 0),
                "points": reward.get("points", 0),
            },
            action_url="/achievements",
        )

    async def notify_level_up(self, user_id: str, level: int) -> Notification | None:
        """Tell a user they reached a new level."""
        return await self.send_notification(
            user_id=user_id,
            notification_type="level_up",
            title={"th": "เลเวลอัป!", "en": "Level Up!"},
            message={
                "th": f"ยินดีด้วย! คุณเลื่อนขึ้นเป็นเลเวล {level}",
                "en": f"Congratulations! You reached level {level}",
            },
            priority="high",
            data={"level": level},
            action_url="/profile",
        )

    async def send_streak_reminder(self, user_id: str, streak_days: int) -> Notification | None:
        """Remind a user to keep their streak alive."""
        return await self.send_notification(
            user_id=user_id,
            notification_type="streak",
            title={"th": "อย่าให้สถิติขาด!", "en": "Keep your streak going!"},
            message={
                "th": f"คุณเรียนต่อเนื่องมา {streak_days} วันแล้ว เรียนวันนี้เพื่อรักษาสถิติ",
                "en": f"You have a {streak_days}-day streak. Study today to keep it.",
            },
            priority="medium",
            data={"streak_days": streak_days},
        )

    async def notify_quiz_result(
        self,
        user_id: str,
        quiz_id: str,
        quiz_title: dict[str, Any],
        percentage: float,
        passed: bool,
    ) -> Notification | None:
        """Send a quiz result summary."""
        title_th = quiz_title.get("th", "")
        title_en = quiz_title.get("en") or title_th
        score = round(percentage)
        if passed:
            title = {"th": "ผ่านแบบทดสอบ!", "en": "Quiz Passed!"}
        else:
            title = {"th": "ผลแบบทดสอบ", "en": "Quiz Result"}
        return await self.send_notification(
            user_id=user_id,
            notification_type="quiz_result",
            title=title,
            message={
                "th": f"คุณได้คะแนน {score}% ในแบบทดสอบ \"{title_th}\"",
                "en": f"You scored {score}% on \"{title_en}\"",
            },
            priority="medium",
            data={"quiz_id": quiz_id, "percentage": percentage, "passed": passed},
            action_url=f"/quizzes/{quiz_id}",
        )

    # =========================================================================
    # Reading
    # =========================================================================

    async def get_user_notifications(
        self,
        user_id: str,
        unread_only: bool = False,
        notification_type: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Notification], int, int]:
        """List visible notifications, newest first.

        Expired notifications and ones still waiting for quiet hours to
        end are hidden.

        Returns:
            Tuple of (notifications, total, unread count).
        """
        now = utc_now()
        visible = [
            Notification.user_id == user_id,
            or_(Notification.expires_at.is_(None), Notification.expires_at > now),
            or_(Notification.scheduled_for.is_(None), Notification.sent_at.is_not(None)),
        ]

        filters = list(visible)
        if unread_only:
            filters.append(Notification.is_read.is_(False))
        if notification_type:
            filters.append(Notification.notification_type == notification_type)

        total_result = await self.db.execute(
            select(func.count()).select_from(Notification).where(*filters)
        )
        total = total_result.scalar() or 0

        unread_result = await self.db.execute(
            select(func.count())
            .select_from(Notification)
            .where(*visible, Notification.is_read.is_(False))
        )
        unread_count = unread_result.scalar() or 0

        result = await self.db.execute(
            select(Notification)
            .where(*filters)
            .order_by(Notification.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total, unread_count

    async def get_unread_count(self, user_id: str) -> int:
        """Number of unread visible notifications."""
        now = utc_now()
        result = await self.db.execute(
            select(func.count())
            .select_from(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
                or_(Notification.expires_at.is_(None), Notification.expires_at > now),
                or_(Notification.scheduled_for.is_(None), Notification.sent_at.is_not(None)),
            )
        )
        return result.scalar() or 0

    async def mark_as_read(self, user_id: str, notification_id: str) -> Notification:
        """Mark one notification as read.

        Raises:
            NotificationNotFoundError: If it does not belong to the user.
        """
        notification = await self._get_notification(user_id, notification_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utc_now()
            await self.db.commit()
            await self.db.refresh(notification)
        return notification

    async def mark_all_as_read(self, user_id: str) -> int:
        """Mark every unread notification as read.

        Returns:
            Number of notifications updated.
        """
        result = await self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=utc_now())
        )
        await self.db.commit()
        return result.rowcount or 0

    async def delete_notification(self, user_id: str, notification_id: str) -> None:
        """Delete a notification.

        Raises:
            NotificationNotFoundError: If it does not belong to the user.
        """
        notification = await self._get_notification(user_id, notification_id)
        await self.db.delete(notification)
        await self.db.commit()

    # =========================================================================
    # Preferences
    # =========================================================================

    async def get_preferences(self, user_id: str) -> NotificationPreference:
        """Get the user's preferences, creating the defaults on first use."""
        preference = await self._get_preference(user_id)
        if preference is not None:
            return preference

        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()

        channels = default_channels()
        if user is not None:
            channels["email"]["address"] = user.email
            channels["email"]["verified"] = bool(user.email_verified)

        preference = NotificationPreference(
            user_id=user_id,
            channels=channels,
            type_settings=default_type_settings(),
            quiet_hours=default_quiet_hours(),
            digest_frequency="realtime",
        )
        self.db.add(preference)
        await self.db.commit()
        await self.db.refresh(preference)

        logger.info("Created default notification preferences for user %s", user_id)
        return preference

    async def update_preferences(
        self,
        user_id: str,
        request: NotificationPreferencesUpdateRequest,
    ) -> NotificationPreference:
        """Apply a partial preference update.

        Changing the email address clears verification unless the new
        address is the user's verified account email.
        """
        preference = await self.get_preferences(user_id)

        if request.channels is not None:
            channels = {key: dict(value) for key, value in preference.channels.items()}
            if request.channels.in_app is not None:
                channels["in_app"]["enabled"] = request.channels.in_app.enabled
            if request.channels.push is not None:
                channels["push"]["enabled"] = request.channels.push.enabled
            if request.channels.email is not None:
                email = request.channels.email
                if email.enabled is not None:
                    channels["email"]["enabled"] = email.enabled
                if email.address is not None and email.address != channels["email"].get("address"):
                    channels["email"]["address"] = email.address
                    channels["email"]["verified"] = await self._is_verified_account_email(
                        user_id, email.address
                    )
            preference.channels = channels

        if request.type_settings is not None:
            type_settings = {key: dict(value) for key, value in preference.type_settings.items()}
            for notification_type, toggles in request.type_settings.items():
                type_settings.setdefault(notification_type, {}).update(toggles)
            preference.type_settings = type_settings

        if request.quiet_hours is not None:
            preference.quiet_hours = request.quiet_hours.model_dump()

        if request.digest_frequency is not None:
            preference.digest_frequency = request.digest_frequency

        await self.db.commit()
        await self.db.refresh(preference)

        logger.info("Updated notification preferences for user %s", user_id)
        return preference

    async def register_push_token(self, user_id: str, token: str, platform: str) -> NotificationPreference:
        """Register a device push token, replacing an existing entry."""
        preference = await self.get_preferences(user_id)
        channels = {key: dict(value) for key, value in preference.channels.items()}

        tokens = [t for t in channels["push"].get("tokens", []) if t.get("token") != token]
        tokens.append({"token": token, "platform": platform, "registered_at": format_iso(utc_now())})
        channels["push"]["tokens"] = tokens
        preference.channels = channels

        await self.db.commit()
        await self.db.refresh(preference)

        logger.info("Registered %s push token for user %s", platform, user_id)
        return preference

    async def remove_push_token(self, user_id: str, token: str) -> NotificationPreference:
        """Remove a device push token if present."""
        preference = await self.get_preferences(user_id)
        channels = {key: dict(value) for key, value in preference.channels.items()}
        channels["push"]["tokens"] = [
            t for t in channels["push"].get("tokens", []) if t.get("token") != token
        ]
        preference.channels = channels

        await self.db.commit()
        await self.db.refresh(preference)
        return preference

    # =========================================================================
    # Jobs
    # =========================================================================

    async def process_scheduled_notifications(self, limit: int | None = None) -> int:
        """Deliver scheduled notifications that are due.

        Args:
            limit: Maximum notifications per run (defaults to the
                configured batch size).

        Returns:
            Number of notifications delivered.
        """
        batch = limit or self._settings.scheduled_batch_size
        result = await self.db.execute(
            select(Notification)
            .where(
                Notification.scheduled_for.is_not(None),
                Notification.scheduled_for <= utc_now(),
                Notification.sent_at.is_(None),
            )
            .order_by(Notification.scheduled_for)
            .limit(batch)
        )
        due = result.scalars().all()

        delivered = 0
        for notification in due:
            preference = await self._get_preference(notification.user_id)
            await self._deliver(notification, preference)
            delivered += 1

        if delivered:
            await self.db.commit()
            logger.info("Delivered %d scheduled notifications", delivered)
        return delivered

    async def cleanup_expired_notifications(self) -> int:
        """Delete expired notifications.

        Returns:
            Number of notifications deleted.
        """
        result = await self.db.execute(
            delete(Notification).where(
                Notification.expires_at.is_not(None),
                Notification.expires_at < utc_now(),
            )
        )
        await self.db.commit()
        deleted = result.rowcount or 0
        logger.info("Deleted %d expired notifications", deleted)
        return deleted

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _deliver(
        self,
        notification: Notification,
        preference: NotificationPreference | None,
    ) -> list[ChannelResult]:
        """Send a stored notification through its channels."""
        channel_settings = preference.channels if preference else default_channels()
        payload = NotificationPayload(
            notification_id=notification.id,
            notification_type=notification.notification_type,
            title=notification.title,
            message=notification.message,
            recipient_id=notification.user_id,
            recipient_email=channel_settings.get("email", {}).get("address"),
            push_tokens=list(channel_settings.get("push", {}).get("tokens", [])),
            data=notification.data,
            action_url=notification.action_url,
            priority=notification.priority,
        )

        results: list[ChannelResult] = []
        status = dict(notification.delivery_status or {})
        for channel_name in notification.channels:
            channel = self.channels[ChannelType(channel_name)]
            result = await channel.send(payload)
            status[channel_name] = result.to_dict()
            results.append(result)

        notification.delivery_status = status
        notification.sent_at = utc_now()
        return results

    async def _is_verified_account_email(self, user_id: str, address: str) -> bool:
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        return bool(user and user.email_verified and user.email.lower() == address.lower())

    async def _get_preference(self, user_id: str) -> NotificationPreference | None:
        result = await self.db.execute(
            select(NotificationPreference).where(NotificationPreference.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def _get_notification(self, user_id: str, notification_id: str) -> Notification:
        result = await self.db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        notification = result.scalar_one_or_none()
        if not notification:
            raise NotificationNotFoundError(f"Notification not found: {notification_id}")
        return notification
