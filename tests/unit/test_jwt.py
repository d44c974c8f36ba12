# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for JWT token utilities.

Tests the JWTManager class and token operations.
"""

from uuid import uuid4

import pytest
from pydantic import SecretStr

from src.core.config.settings import JWTSettings
from src.domains.auth.jwt import (
    InvalidTokenError,
    JWTManager,
    TokenExpiredError,
    TokenPair,
    TokenPayload,
)


@pytest.fixture
def jwt_settings() -> JWTSettings:
    """JWT settings with a test secret."""
    return JWTSettings(
        secret_key=SecretStr("test-secret-key-for-jwt-testing"),
        algorithm="HS256",
        access_token_expire_minutes=30,
        refresh_token_expire_days=7,
    )


@pytest.fixture
def jwt_manager(jwt_settings: JWTSettings) -> JWTManager:
    return JWTManager(jwt_settings)


class TestJWTManager:
    """Tests for JWTManager class."""

    def test_create_token_pair_returns_valid_tokens(self, jwt_manager: JWTManager) -> None:
        result = jwt_manager.create_token_pair(user_id=str(uuid4()), role="learner")

        assert isinstance(result, TokenPair)
        assert result.access_token
        assert result.refresh_token
        assert result.token_type == "Bearer"
        assert result.expires_in == 30 * 60
        assert result.refresh_expires_in == 7 * 24 * 60 * 60

    def test_decode_access_token_returns_payload(self, jwt_manager: JWTManager) -> None:
        user_id = str(uuid4())

        token = jwt_manager.create_access_token(
            user_id=user_id,
            role="author",
            email="kru.somchai@example.com",
            language="en",
            device_id="tablet-1",
        )
        payload = jwt_manager.decode_token(token)

        assert isinstance(payload, TokenPayload)
        assert payload.sub == user_id
        assert payload.type == "access"
        assert payload.role == "author"
        assert payload.email == "kru.somchai@example.com"
        assert payload.language == "en"
        assert payload.device_id == "tablet-1"

    def test_decode_refresh_token_carries_device(self, jwt_manager: JWTManager) -> None:
        tokens = jwt_manager.create_token_pair(user_id="user-1", role="learner", device_id="phone-1")

        payload = jwt_manager.decode_token(tokens.refresh_token, "refresh")

        assert payload.type == "refresh"
        assert payload.device_id == "phone-1"
        assert payload.role is None

    def test_decode_wrong_type_raises(self, jwt_manager: JWTManager) -> None:
        tokens = jwt_manager.create_token_pair(user_id="user-1", role="learner")

        with pytest.raises(InvalidTokenError, match="Expected refresh token"):
            jwt_manager.decode_token(tokens.access_token, "refresh")

    def test_decode_garbage_raises(self, jwt_manager: JWTManager) -> None:
        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token("not.a.token")

    def test_decode_with_other_secret_raises(self, jwt_manager: JWTManager) -> None:
        other = JWTManager(JWTSettings(secret_key=SecretStr("another-secret")))
        token = other.create_access_token(user_id="user-1", role="learner")

        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token(token)

    def test_expired_token_raises(self, jwt_settings: JWTSettings) -> None:
        jwt_settings.access_token_expire_minutes = -1
        manager = JWTManager(jwt_settings)
        token = manager.create_access_token(user_id="user-1", role="learner")

        with pytest.raises(TokenExpiredError):
            manager.decode_token(token)

    def test_verify_token(self, jwt_manager: JWTManager) -> None:
        token = jwt_manager.create_access_token(user_id="user-1", role="admin")

        assert jwt_manager.verify_token(token, "access") is True
        assert jwt_manager.verify_token(token, "refresh") is False
        assert jwt_manager.verify_token("invalid") is False

    def test_hash_token_is_stable_sha256(self) -> None:
        first = JWTManager.hash_token("refresh-token")

        assert first == JWTManager.hash_token("refresh-token")
        assert len(first) == 64
        assert first != JWTManager.hash_token("other-token")
