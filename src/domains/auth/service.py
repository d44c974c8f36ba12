# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication service for accounts and device sessions.

This module provides the main AuthService that orchestrates:
- Registration and email/password login
- Email verification with six-digit one-time codes
- One device session per (user, device) holding a hashed refresh token
- Token refresh with rotation
- Logout of one device or of all devices

Example:
    >>> auth_service = AuthService(db_session, jwt_manager)
    >>> user, tokens = await auth_service.login(request)
    >>> tokens = await auth_service.refresh_tokens(tokens.refresh_token)
"""

import logging
import secrets
from datetime import timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.auth.jwt import JWTError, JWTManager, TokenPair
from src.domains.auth.password import hash_password, password_problems, verify_password
from src.domains.gamification import GamificationService
from src.infrastructure.database.models import (
    DeviceSession,
    EmailVerificationCode,
    NotificationPreference,
    User,
    new_id,
)
from src.models.auth import DeviceInfo, LoginRequest, RegisterRequest
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

VERIFICATION_CODE_LENGTH = 6
VERIFICATION_CODE_TTL = timedelta(minutes=10)


class AuthenticationError(Exception):
    """Base exception for authentication errors."""

    pass


class InvalidCredentialsError(AuthenticationError):
    """Raised when email or password is wrong."""

    pass


class AccountInactiveError(AuthenticationError):
    """Raised when account is not active."""

    pass


class EmailAlreadyRegisteredError(AuthenticationError):
    """Raised when registering an email that already has an account."""

    pass


class WeakPasswordError(AuthenticationError):
    """Raised when a password fails the strength rules."""

    pass


class TokenRefreshError(AuthenticationError):
    """Raised when token refresh fails."""

    pass


class SessionNotFoundError(AuthenticationError):
    """Raised when session is not found or invalid."""

    pass


class InvalidVerificationCodeError(AuthenticationError):
    """Raised when a verification code is wrong, expired or already used."""

    pass


class AccountNotFoundError(AuthenticationError):
    """Raised when no account has the given email."""

    pass


class EmailAlreadyVerifiedError(AuthenticationError):
    """Raised when asking for a code for an already verified email."""

    pass


class AuthService:
    """Authentication service for accounts and sessions.

    Attributes:
        _db: Database session for queries.
        _jwt_manager: JWT token manager.
    """

    def __init__(
        self,
        db: AsyncSession,
        jwt_manager: JWTManager,
        gamification: GamificationService | None = None,
    ) -> None:
        self._db = db
        self._jwt_manager = jwt_manager
        self._gamification = gamification or GamificationService(db)

    async def register(self, request: RegisterRequest) -> tuple[User, TokenPair]:
        """Create an unverified learner account and sign the device in.

        A verification code is issued for the email in the same commit.

        Raises:
            WeakPasswordError: If the password is too weak.
            EmailAlreadyRegisteredError: If the email is taken.
        """
        problems = password_problems(request.password)
        if problems:
            raise WeakPasswordError(", ".join(problems))

        email = request.email.lower()
        if await self._get_by_email(email) is not None:
            raise EmailAlreadyRegisteredError("Email already registered")

        user = User(
            id=new_id(),
            email=email,
            password_hash=hash_password(request.password),
            role="learner",
            display_name=request.display_name,
            language=request.language,
            timezone="Asia/Bangkok",
            daily_time_budget_minutes=30,
            leaderboard_opt_in=True,
            email_verified=False,
            is_active=True,
            last_login_at=utc_now(),
        )
        self._db.add(user)
        await self.issue_verification_code(email, request.language)

        tokens = await self._start_session(user, request)
        await self._db.commit()
        await self._db.refresh(user)

        logger.info("User registered: %s (device=%s)", user.id, request.device_id)
        return user, tokens

    async def login(self, request: LoginRequest) -> tuple[User, TokenPair]:
        """Authenticate with email and password.

        A successful login grants the daily login reward; a reward
        failure never fails the login.

        Raises:
            InvalidCredentialsError: If email or password is wrong.
            AccountInactiveError: If the account is disabled.
        """
        user = await self._get_by_email(request.email.lower())
        if user is None or not verify_password(request.password, user.password_hash):
            raise InvalidCredentialsError("Invalid email or password")
        if not user.is_active:
            raise AccountInactiveError("Account is not active")

        user.last_login_at = utc_now()
        tokens = await self._start_session(user, request)
        await self._db.commit()
        await self._db.refresh(user)

        try:
            await self._gamification.handle_daily_login(user.id)
        except Exception as e:
            logger.warning("Daily login reward failed for user %s: %s", user.id, str(e))

        logger.info("User logged in: %s (device=%s)", user.id, request.device_id)
        return user, tokens

    # =========================================================================
    # Email verification
    # =========================================================================

    async def issue_verification_code(self, email: str, language: str = "th") -> EmailVerificationCode:
        """Replace any pending code for an email with a fresh one.

        The caller commits. The code is delivered by the mail worker.
        """
        email = email.lower()
        await self._db.execute(delete(EmailVerificationCode).where(EmailVerificationCode.email == email))

        code = EmailVerificationCode(
            id=new_id(),
            email=email,
            code=generate_verification_code(),
            language=language,
            expires_at=utc_now() + VERIFICATION_CODE_TTL,
        )
        self._db.add(code)
        logger.info("Verification code issued for %s", email)
        return code

    async def verify_email(self, email: str, code: str) -> User:
        """Mark an account email as verified with its one-time code.

        A code is consumed by a successful verification. Stored notification
        preferences for the same address start accepting email.

        Raises:
            InvalidVerificationCodeError: If the code does not match the
                pending one or has expired.
            AccountNotFoundError: If no account has the email.
        """
        email = email.lower()
        result = await self._db.execute(
            select(EmailVerificationCode).where(EmailVerificationCode.email == email)
        )
        pending = result.scalar_one_or_none()
        if (
            pending is None
            or pending.is_expired()
            or not secrets.compare_digest(pending.code, code)
        ):
            raise InvalidVerificationCodeError("Invalid or expired verification code")

        user = await self._get_by_email(email)
        if user is None:
            raise AccountNotFoundError("User not found")

        await self._db.delete(pending)
        user.email_verified = True
        await self._mark_email_channel_verified(user)
        await self._db.commit()

        logger.info("Email verified for user %s", user.id)
        return user

    async def resend_verification_code(self, email: str, language: str | None = None) -> EmailVerificationCode:
        """Issue a new code for an unverified account.

        Args:
            email: Account email.
            language: Language of the email; defaults to the user's.

        Raises:
            AccountNotFoundError: If no account has the email.
            EmailAlreadyVerifiedError: If the email is already verified.
        """
        user = await self._get_by_email(email.lower())
        if user is None:
            raise AccountNotFoundError("User not found")
        if user.email_verified:
            raise EmailAlreadyVerifiedError("Email already verified")

        code = await self.issue_verification_code(user.email, language or user.language)
        await self._db.commit()
        return code

    async def refresh_tokens(self, refresh_token: str) -> TokenPair:
        """Exchange a refresh token for a new pair.

        The stored hash is rotated, so a refresh token works only once.

        Raises:
            TokenRefreshError: If the token is invalid, expired, already
                rotated, or its user is gone or inactive.
        """
        try:
            payload = self._jwt_manager.decode_token(refresh_token, expected_type="refresh")
        except JWTError as e:
            raise TokenRefreshError(f"Invalid refresh token: {str(e)}")

        session = await self._get_session(payload.sub, payload.device_id)
        if session is None or session.refresh_token_hash != self._jwt_manager.hash_token(refresh_token):
            raise TokenRefreshError("Invalid refresh token")

        user = await self._db.get(User, payload.sub)
        if user is None or not user.is_active:
            raise TokenRefreshError("User not found or inactive")

        tokens = self._issue(user, session.device_id)
        session.refresh_token_hash = self._jwt_manager.hash_token(tokens.refresh_token)
        session.last_active_at = utc_now()
        await self._db.commit()

        logger.info("Tokens refreshed for user %s (device=%s)", user.id, session.device_id)
        return tokens

    async def logout(self, user_id: str, device_id: str | None) -> None:
        """End the session of one device.

        Raises:
            SessionNotFoundError: If the device has no session.
        """
        session = await self._get_session(user_id, device_id)
        if session is None:
            raise SessionNotFoundError("Session not found")

        await self._db.delete(session)
        await self._db.commit()
        logger.info("User logged out: %s (device=%s)", user_id, device_id)

    async def logout_all(self, user_id: str) -> int:
        """End every session of a user.

        Returns:
            Number of sessions removed.
        """
        result = await self._db.execute(delete(DeviceSession).where(DeviceSession.user_id == user_id))
        await self._db.commit()

        count = result.rowcount or 0
        logger.info("User logged out of all devices: %s (%d sessions)", user_id, count)
        return count

    # =========================================================================
    # Helpers
    # =========================================================================

    def _issue(self, user: User, device_id: str) -> TokenPair:
        return self._jwt_manager.create_token_pair(
            user_id=user.id,
            role=user.role,
            email=user.email,
            language=user.language,
            device_id=device_id,
        )

    async def _start_session(self, user: User, device: DeviceInfo) -> TokenPair:
        """Create or replace the session of a device."""
        tokens = self._issue(user, device.device_id)
        token_hash = self._jwt_manager.hash_token(tokens.refresh_token)
        now = utc_now()

        session = await self._get_session(user.id, device.device_id)
        if session is None:
            self._db.add(
                DeviceSession(
                    id=new_id(),
                    user_id=user.id,
                    device_id=device.device_id,
                    device_name=device.device_name,
                    platform=device.platform,
                    refresh_token_hash=token_hash,
                    created_at=now,
                    last_active_at=now,
                )
            )
        else:
            session.refresh_token_hash = token_hash
            session.platform = device.platform
            session.device_name = device.device_name or session.device_name
            session.last_active_at = now
        return tokens

    async def _mark_email_channel_verified(self, user: User) -> None:
        result = await self._db.execute(
            select(NotificationPreference).where(NotificationPreference.user_id == user.id)
        )
        preference = result.scalar_one_or_none()
        if preference is None:
            return

        email = dict((preference.channels or {}).get("email", {}))
        if (email.get("address") or "").lower() != user.email:
            return
        email["verified"] = True
        # Reassign so the JSONB change is detected
        preference.channels = {**preference.channels, "email": email}

    async def _get_by_email(self, email: str) -> User | None:
        result = await self._db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def _get_session(self, user_id: str, device_id: str | None) -> DeviceSession | None:
        if not device_id:
            return None
        result = await self._db.execute(
            select(DeviceSession).where(
                DeviceSession.user_id == user_id,
                DeviceSession.device_id == device_id,
            )
        )
        return result.scalar_one_or_none()


def generate_verification_code() -> str:
    """Random zero-padded numeric code."""
    return f"{secrets.randbelow(10**VERIFICATION_CODE_LENGTH):0{VERIFICATION_CODE_LENGTH}d}"
