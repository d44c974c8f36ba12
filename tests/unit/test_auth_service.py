# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for AuthService."""

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from pydantic import SecretStr

from src.core.config.settings import JWTSettings
from src.domains.auth.jwt import JWTManager
from src.domains.auth.password import PasswordHasher
from src.domains.auth.service import (
    AccountInactiveError,
    AccountNotFoundError,
    AuthService,
    EmailAlreadyRegisteredError,
    EmailAlreadyVerifiedError,
    InvalidCredentialsError,
    InvalidVerificationCodeError,
    SessionNotFoundError,
    TokenRefreshError,
    WeakPasswordError,
    generate_verification_code,
)
from src.infrastructure.database.models import DeviceSession, EmailVerificationCode, User
from src.models.auth import LoginRequest, RegisterRequest
from src.utils.datetime import utc_now

HASHER = PasswordHasher(rounds=4)
PASSWORD_HASH = HASHER.hash("learner2025")


@pytest.fixture
def jwt_manager() -> JWTManager:
    return JWTManager(JWTSettings(secret_key=SecretStr("test-secret-key-for-testing-only")))


@pytest.fixture
def gamification():
    return AsyncMock()


@pytest.fixture
def service(mock_db, jwt_manager, gamification):
    return AuthService(mock_db, jwt_manager, gamification=gamification)


def _user(**overrides) -> SimpleNamespace:
    values = dict(
        id="user-1",
        email="learner@example.com",
        password_hash=PASSWORD_HASH,
        role="learner",
        language="th",
        is_active=True,
        email_verified=False,
        last_login_at=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestRegister:
    """Tests for AuthService.register."""

    @pytest.mark.asyncio
    async def test_creates_learner_and_session(self, service, mock_db, make_result, jwt_manager) -> None:
        mock_db.execute.return_value = make_result(scalar=None)
        request = RegisterRequest(
            email="Learner@Example.com",
            password="learner2025",
            display_name="Somchai",
            device_id="phone-1",
            platform="android",
        )

        user, tokens = await service.register(request)

        assert user.email == "learner@example.com"
        assert user.role == "learner"
        assert user.password_hash != "learner2025"

        added = [call.args[0] for call in mock_db.add.call_args_list]
        session = next(obj for obj in added if isinstance(obj, DeviceSession))
        assert session.device_id == "phone-1"
        assert session.refresh_token_hash == jwt_manager.hash_token(tokens.refresh_token)

        payload = jwt_manager.decode_token(tokens.access_token, expected_type="access")
        assert payload.device_id == "phone-1"
        assert payload.language == "th"

    @pytest.mark.asyncio
    async def test_weak_password(self, service) -> None:
        request = RegisterRequest(
            email="learner@example.com", password="onlyletters", display_name="A", device_id="d"
        )

        with pytest.raises(WeakPasswordError):
            await service.register(request)

    @pytest.mark.asyncio
    async def test_duplicate_email(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=_user())
        request = RegisterRequest(
            email="learner@example.com", password="learner2025", display_name="A", device_id="d"
        )

        with pytest.raises(EmailAlreadyRegisteredError):
            await service.register(request)
        mock_db.add.assert_not_called()


class TestLogin:
    """Tests for AuthService.login."""

    @pytest.mark.asyncio
    async def test_login_rewards_daily_visit(self, service, mock_db, make_result, gamification) -> None:
        user = _user()
        mock_db.execute.side_effect = [make_result(scalar=user), make_result(scalar=None)]

        result, tokens = await service.login(
            LoginRequest(email="learner@example.com", password="learner2025", device_id="d")
        )

        assert result is user
        assert user.last_login_at is not None
        assert tokens.access_token
        gamification.handle_daily_login.assert_awaited_once_with("user-1")

    @pytest.mark.asyncio
    async def test_reward_failure_does_not_block_login(
        self, service, mock_db, make_result, gamification
    ) -> None:
        gamification.handle_daily_login.side_effect = RuntimeError("boom")
        mock_db.execute.side_effect = [make_result(scalar=_user()), make_result(scalar=None)]

        _, tokens = await service.login(
            LoginRequest(email="learner@example.com", password="learner2025", device_id="d")
        )

        assert tokens.refresh_token

    @pytest.mark.asyncio
    async def test_wrong_password(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=_user())

        with pytest.raises(InvalidCredentialsError):
            await service.login(LoginRequest(email="learner@example.com", password="nope", device_id="d"))

    @pytest.mark.asyncio
    async def test_unknown_email(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=None)

        with pytest.raises(InvalidCredentialsError):
            await service.login(LoginRequest(email="ghost@example.com", password="x", device_id="d"))

    @pytest.mark.asyncio
    async def test_inactive_account(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=_user(is_active=False))

        with pytest.raises(AccountInactiveError):
            await service.login(
                LoginRequest(email="learner@example.com", password="learner2025", device_id="d")
            )


class TestRefreshAndLogout:
    """Tests for token rotation and logout."""

    @pytest.mark.asyncio
    async def test_refresh_rotates_hash(self, service, mock_db, make_result, jwt_manager) -> None:
        pair = jwt_manager.create_token_pair(user_id="user-1", role="learner", device_id="d")
        session = SimpleNamespace(
            device_id="d", refresh_token_hash=jwt_manager.hash_token(pair.refresh_token), last_active_at=None
        )
        mock_db.execute.return_value = make_result(scalar=session)
        mock_db.get.return_value = _user()

        tokens = await service.refresh_tokens(pair.refresh_token)

        assert session.refresh_token_hash == jwt_manager.hash_token(tokens.refresh_token)
        assert session.last_active_at is not None

    @pytest.mark.asyncio
    async def test_rotated_token_is_rejected(self, service, mock_db, make_result, jwt_manager) -> None:
        pair = jwt_manager.create_token_pair(user_id="user-1", role="learner", device_id="d")
        session = SimpleNamespace(device_id="d", refresh_token_hash="another-hash")
        mock_db.execute.return_value = make_result(scalar=session)

        with pytest.raises(TokenRefreshError):
            await service.refresh_tokens(pair.refresh_token)

    @pytest.mark.asyncio
    async def test_access_token_cannot_refresh(self, service, jwt_manager) -> None:
        pair = jwt_manager.create_token_pair(user_id="user-1", role="learner", device_id="d")

        with pytest.raises(TokenRefreshError):
            await service.refresh_tokens(pair.access_token)

    @pytest.mark.asyncio
    async def test_logout_without_session(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=None)

        with pytest.raises(SessionNotFoundError):
            await service.logout("user-1", "d")

    @pytest.mark.asyncio
    async def test_logout_all(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(rowcount=3)

        assert await service.logout_all("user-1") == 3


def _pending_code(code: str = "042917", minutes_left: int = 5) -> EmailVerificationCode:
    return EmailVerificationCode(
        id="code-1",
        email="learner@example.com",
        code=code,
        language="th",
        expires_at=utc_now() + timedelta(minutes=minutes_left),
    )


class TestEmailVerification:
    """Tests for verification codes."""

    def test_generated_code_is_six_digits(self) -> None:
        codes = {generate_verification_code() for _ in range(50)}

        assert all(len(code) == 6 and code.isdigit() for code in codes)
        assert len(codes) > 1

    @pytest.mark.asyncio
    async def test_register_issues_code(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=None)
        request = RegisterRequest(
            email="Learner@Example.com",
            password="learner2025",
            display_name="Somchai",
            language="en",
            device_id="phone-1",
        )

        user, _ = await service.register(request)

        added = [call.args[0] for call in mock_db.add.call_args_list]
        code = next(obj for obj in added if isinstance(obj, EmailVerificationCode))
        assert user.email_verified is False
        assert code.email == "learner@example.com"
        assert code.language == "en"
        assert len(code.code) == 6
        assert timedelta(minutes=9) < code.expires_at - utc_now() <= timedelta(minutes=10)

    @pytest.mark.asyncio
    async def test_verify_marks_email_and_consumes_code(self, service, mock_db, make_result) -> None:
        pending = _pending_code()
        user = _user()
        preference = SimpleNamespace(
            channels={"in_app": {"enabled": True}, "email": {"address": "learner@example.com", "verified": False}}
        )
        mock_db.execute.side_effect = [
            make_result(scalar=pending),
            make_result(scalar=user),
            make_result(scalar=preference),
        ]

        result = await service.verify_email("Learner@Example.com", "042917")

        assert result is user
        assert user.email_verified is True
        assert preference.channels["email"]["verified"] is True
        assert preference.channels["in_app"] == {"enabled": True}
        mock_db.delete.assert_awaited_once_with(pending)
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_wrong_code(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=_pending_code())

        with pytest.raises(InvalidVerificationCodeError):
            await service.verify_email("learner@example.com", "111111")
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expired_code(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=_pending_code(minutes_left=-1))

        with pytest.raises(InvalidVerificationCodeError):
            await service.verify_email("learner@example.com", "042917")

    @pytest.mark.asyncio
    async def test_code_for_deleted_account(self, service, mock_db, make_result) -> None:
        mock_db.execute.side_effect = [make_result(scalar=_pending_code()), make_result(scalar=None)]

        with pytest.raises(AccountNotFoundError):
            await service.verify_email("learner@example.com", "042917")

    @pytest.mark.asyncio
    async def test_resend_replaces_code(self, service, mock_db, make_result) -> None:
        mock_db.execute.side_effect = [make_result(scalar=_user(language="en")), make_result()]

        code = await service.resend_verification_code("learner@example.com")

        assert code.language == "en"
        assert "email_verification_codes" in str(mock_db.execute.await_args_list[1].args[0])
        mock_db.add.assert_called_once_with(code)
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_resend_for_unknown_email(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=None)

        with pytest.raises(AccountNotFoundError):
            await service.resend_verification_code("ghost@example.com")

    @pytest.mark.asyncio
    async def test_resend_for_verified_email(self, service, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(scalar=_user(email_verified=True))

        with pytest.raises(EmailAlreadyVerifiedError):
            await service.resend_verification_code("learner@example.com")
        mock_db.add.assert_not_called()
