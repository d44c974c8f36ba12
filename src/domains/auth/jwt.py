# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""JWT token management utilities.

This module provides JWT token creation and validation using python-jose.
Supports access tokens and refresh tokens with configurable expiration,
issuer and audience.

Example:
    >>> from src.core.config import get_settings
    >>> jwt_manager = JWTManager(get_settings().jwt)
    >>> tokens = jwt_manager.create_token_pair(user_id="user-123", role="learner")
    >>> claims = jwt_manager.decode_token(tokens.access_token, "access")
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Literal

from jose import ExpiredSignatureError, JWTError as JoseJWTError, jwt
from pydantic import BaseModel

from src.core.config.settings import JWTSettings

logger = logging.getLogger(__name__)


class TokenPayload(BaseModel):
    """JWT token payload structure.

    Attributes:
        sub: Subject (user ID).
        type: Token type (access or refresh).
        role: learner, author or admin. Access tokens only.
        email: User email. Access tokens only.
        language: Preferred language. Access tokens only.
        device_id: Device the session belongs to.
        exp: Expiration timestamp.
        iat: Issued at timestamp.
        jti: JWT ID for token tracking.
    """

    sub: str
    type: Literal["access", "refresh"]
    role: str | None = None
    email: str | None = None
    language: str = "th"
    device_id: str | None = None
    exp: int
    iat: int
    jti: str


class TokenPair(BaseModel):
    """Access and refresh token pair.

    Attributes:
        access_token: JWT access token string.
        refresh_token: JWT refresh token string.
        token_type: Token type (always "Bearer").
        expires_in: Access token expiration in seconds.
        refresh_expires_in: Refresh token expiration in seconds.
    """

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_expires_in: int


class JWTError(Exception):
    """Base exception for JWT operations."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token is invalid."""

    pass


class JWTManager:
    """JWT token creation and validation manager.

    Attributes:
        _settings: JWT configuration settings.
    """

    def __init__(self, settings: JWTSettings) -> None:
        self._settings = settings

    def _encode(self, payload: dict) -> str:
        return jwt.encode(
            payload,
            self._settings.secret_key.get_secret_value(),
            algorithm=self._settings.algorithm,
        )

    def create_token_pair(
        self,
        user_id: str,
        role: str,
        email: str | None = None,
        language: str = "th",
        device_id: str | None = None,
    ) -> TokenPair:
        """Create an access and refresh token pair.

        Args:
            user_id: User identifier.
            role: learner, author or admin.
            email: User email.
            language: Preferred language.
            device_id: Device the refresh token is bound to.

        Returns:
            TokenPair with access and refresh tokens.
        """
        now = datetime.now(timezone.utc)
        refresh_exp = now + timedelta(days=self._settings.refresh_token_expire_days)

        refresh_token = self._encode(
            {
                "sub": str(user_id),
                "type": "refresh",
                "device_id": device_id,
                "iss": self._settings.issuer,
                "aud": self._settings.audience,
                "exp": int(refresh_exp.timestamp()),
                "iat": int(now.timestamp()),
                "jti": secrets.token_urlsafe(16),
            }
        )

        return TokenPair(
            access_token=self.create_access_token(user_id, role, email, language, device_id),
            refresh_token=refresh_token,
            token_type="Bearer",
            expires_in=self._settings.access_token_expire_minutes * 60,
            refresh_expires_in=self._settings.refresh_token_expire_days * 24 * 60 * 60,
        )

    def create_access_token(
        self,
        user_id: str,
        role: str,
        email: str | None = None,
        language: str = "th",
        device_id: str | None = None,
    ) -> str:
        """Create a short-lived access token.

        Returns:
            JWT access token string.
        """
        now = datetime.now(timezone.utc)
        exp = now + timedelta(minutes=self._settings.access_token_expire_minutes)

        return self._encode(
            {
                "sub": str(user_id),
                "type": "access",
                "role": role,
                "email": email,
                "language": language,
                "device_id": device_id,
                "iss": self._settings.issuer,
                "aud": self._settings.audience,
                "exp": int(exp.timestamp()),
                "iat": int(now.timestamp()),
                "jti": secrets.token_urlsafe(16),
            }
        )

    def decode_token(
        self,
        token: str,
        expected_type: Literal["access", "refresh"] | None = None,
    ) -> TokenPayload:
        """Decode and validate a JWT token.

        Args:
            token: JWT token string.
            expected_type: Expected token type (access or refresh).

        Returns:
            TokenPayload with decoded claims.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is invalid or wrong type.
        """
        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key.get_secret_value(),
                algorithms=[self._settings.algorithm],
                audience=self._settings.audience,
                issuer=self._settings.issuer,
            )
        except ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except JoseJWTError as e:
            logger.warning("Token decode failed: %s", str(e))
            raise InvalidTokenError(f"Invalid token: {str(e)}")

        if expected_type and payload.get("type") != expected_type:
            raise InvalidTokenError(f"Expected {expected_type} token, got {payload.get('type')}")

        try:
            return TokenPayload.model_validate(payload)
        except ValueError as e:
            raise InvalidTokenError(f"Invalid token claims: {str(e)}")

    def verify_token(
        self,
        token: str,
        expected_type: Literal["access", "refresh"] | None = None,
    ) -> bool:
        """Verify if a token is valid."""
        try:
            self.decode_token(token, expected_type)
            return True
        except JWTError:
            return False

    @staticmethod
    def hash_token(token: str) -> str:
        """Create a SHA-256 hash of a token.

        Used for storing refresh token hashes in the database instead of
        the actual token.
        """
        return hashlib.sha256(token.encode()).hexdigest()
