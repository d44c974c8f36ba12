# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for quiet hours, channels and the notification service."""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from src.infrastructure.database.models.notification import (
    default_channels,
    default_quiet_hours,
    default_type_settings,
)
from src.infrastructure.notifications import NotificationService
from src.infrastructure.notifications.channels import (
    ChannelType,
    EmailChannel,
    InAppChannel,
    PushChannel,
)
from src.infrastructure.notifications.quiet_hours import (
    is_in_quiet_hours,
    parse_clock,
    quiet_hours_end,
)
from src.infrastructure.notifications.service import NotificationNotFoundError

# 23:00 in Bangkok (UTC+7)
LATE_EVENING_UTC = datetime(2025, 3, 1, 16, 0, tzinfo=timezone.utc)
# 14:00 in Bangkok
AFTERNOON_UTC = datetime(2025, 3, 1, 7, 0, tzinfo=timezone.utc)

QUIET = {"enabled": True, "start": "22:00", "end": "08:00", "timezone": "Asia/Bangkok"}


def _preference(**overrides) -> SimpleNamespace:
    values = dict(
        user_id="user-1",
        channels=default_channels(),
        type_settings=default_type_settings(),
        quiet_hours=default_quiet_hours(),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestQuietHours:
    """Tests for quiet hours evaluation."""

    def test_parse_clock(self) -> None:
        assert parse_clock("07:30").hour == 7
        with pytest.raises(ValueError):
            parse_clock("7h30")

    def test_window_wrapping_midnight(self) -> None:
        assert is_in_quiet_hours(QUIET, LATE_EVENING_UTC) is True
        assert is_in_quiet_hours(QUIET, AFTERNOON_UTC) is False

    def test_same_day_window(self) -> None:
        lunch = {"enabled": True, "start": "12:00", "end": "15:00", "timezone": "Asia/Bangkok"}

        assert is_in_quiet_hours(lunch, AFTERNOON_UTC) is True
        assert is_in_quiet_hours(lunch, LATE_EVENING_UTC) is False

    def test_disabled_or_empty_window(self) -> None:
        assert is_in_quiet_hours({**QUIET, "enabled": False}, LATE_EVENING_UTC) is False
        assert is_in_quiet_hours({**QUIET, "start": "08:00"}, LATE_EVENING_UTC) is False
        assert is_in_quiet_hours(None, LATE_EVENING_UTC) is False

    def test_end_is_next_morning_local(self) -> None:
        assert quiet_hours_end(QUIET, LATE_EVENING_UTC) == datetime(2025, 3, 2, 1, 0, tzinfo=timezone.utc)

    def test_unknown_timezone_uses_default(self) -> None:
        quiet = {**QUIET, "timezone": "Mars/Olympus"}

        assert is_in_quiet_hours(quiet, LATE_EVENING_UTC) is True


class TestChannelSelection:
    """Tests for per-channel enablement."""

    def test_email_needs_verified_address(self) -> None:
        channel = EmailChannel()
        preference = _preference()

        assert channel.is_enabled_for_preference(preference, "achievement") is False

        preference.channels["email"].update({"verified": True, "address": "learner@example.com"})
        assert channel.is_enabled_for_preference(preference, "achievement") is True
        assert channel.is_enabled_for_preference(preference, "streak") is False

    def test_push_needs_tokens(self) -> None:
        channel = PushChannel()
        preference = _preference()

        assert channel.is_enabled_for_preference(preference, "streak") is False

        preference.channels["push"]["tokens"] = [{"token": "abc", "platform": "android"}]
        assert channel.is_enabled_for_preference(preference, "streak") is True
        assert channel.is_enabled_for_preference(preference, "announcement") is False

    def test_unknown_type_defaults_to_enabled(self) -> None:
        assert InAppChannel().is_enabled_for_preference(None, "custom") is True

    def test_disabled_channel(self) -> None:
        preference = _preference()
        preference.channels["in_app"]["enabled"] = False

        assert InAppChannel().is_enabled_for_preference(preference, "achievement") is False


@pytest.fixture
def service(mock_db):
    return NotificationService(db=mock_db)


class TestSendNotification:
    """Tests for NotificationService.send_notification."""

    @pytest.mark.asyncio
    async def test_defaults_deliver_in_app(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=None)

        with patch("src.infrastructure.notifications.service.utc_now", return_value=AFTERNOON_UTC):
            notification = await service.send_notification(
                "user-1",
                "level_up",
                {"th": "เลเวลอัป!", "en": "Level Up!"},
                {"th": "ข้อความ", "en": "Message"},
            )

        assert notification.channels == ["in_app"]
        assert notification.scheduled_for is None
        assert notification.sent_at is not None
        assert notification.delivery_status["in_app"]["status"] == "sent"
        mock_db.add.assert_called_once()
        mock_db.commit.assert_awaited()

    @pytest.mark.asyncio
    async def test_quiet_hours_defer_delivery(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=_preference(quiet_hours=dict(QUIET)))

        with patch("src.infrastructure.notifications.service.utc_now", return_value=LATE_EVENING_UTC):
            notification = await service.send_notification(
                "user-1", "reminder", {"en": "Reminder"}, {"en": "Time to study"}
            )

        assert notification.scheduled_for == datetime(2025, 3, 2, 1, 0, tzinfo=timezone.utc)
        assert notification.sent_at is None
        assert notification.delivery_status == {"in_app": {"status": "pending"}}

    @pytest.mark.asyncio
    async def test_no_enabled_channel_returns_none(self, service, mock_db, make_result) -> None:
        preference = _preference()
        preference.channels["in_app"]["enabled"] = False
        mock_db.execute.return_value = make_result(scalar=preference)

        result = await service.send_notification("user-1", "achievement", {"en": "x"}, {"en": "y"})

        assert result is None
        mock_db.add.assert_not_called()


class TestNotificationCenter:
    """Tests for reading and managing notifications."""

    @pytest.mark.asyncio
    async def test_mark_as_read(self, service, mock_db, make_result) -> None:
        notification = SimpleNamespace(id="n-1", is_read=False, read_at=None)
        mock_db.execute.return_value = make_result(scalar=notification)

        result = await service.mark_as_read("user-1", "n-1")

        assert result.is_read is True
        assert result.read_at is not None

    @pytest.mark.asyncio
    async def test_mark_as_read_other_users_notification(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=None)

        with pytest.raises(NotificationNotFoundError):
            await service.mark_as_read("user-2", "n-1")

    @pytest.mark.asyncio
    async def test_mark_all_as_read_returns_count(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(rowcount=4)

        assert await service.mark_all_as_read("user-1") == 4

    @pytest.mark.asyncio
    async def test_register_push_token_replaces_existing(self, service, mock_db, make_result) -> None:
        preference = _preference()
        preference.channels["push"]["tokens"] = [{"token": "tok-1", "platform": "ios"}]
        mock_db.execute.return_value = make_result(scalar=preference)

        result = await service.register_push_token("user-1", "tok-1", "android")

        tokens = result.channels["push"]["tokens"]
        assert len(tokens) == 1
        assert tokens[0]["platform"] == "android"

    @pytest.mark.asyncio
    async def test_process_scheduled_notifications(self, service, mock_db, make_result) -> None:
        due = SimpleNamespace(
            id="n-1",
            user_id="user-1",
            notification_type="reminder",
            title={"en": "Reminder"},
            message={"en": "Study"},
            data={},
            action_url=None,
            priority="medium",
            channels=[ChannelType.IN_APP.value],
            delivery_status={"in_app": {"status": "pending"}},
            sent_at=None,
        )
        mock_db.execute.side_effect = [make_result(scalars=[due]), make_result(scalar=None)]

        delivered = await service.process_scheduled_notifications()

        assert delivered == 1
        assert due.sent_at is not None
        assert due.delivery_status["in_app"]["status"] == "sent"
