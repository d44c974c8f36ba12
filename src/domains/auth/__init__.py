# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain services.

This module provides authentication services:
- JWT access/refresh token creation and validation
- bcrypt password hashing and strength rules
- Registration, login and device session management
- Email verification codes

Exports:
    JWTManager: JWT token creation and validation.
    AuthService: Account and session service.
"""

from src.domains.auth.jwt import (
    InvalidTokenError,
    JWTError,
    JWTManager,
    TokenExpiredError,
    TokenPair,
    TokenPayload,
)
from src.domains.auth.password import (
    PasswordHasher,
    hash_password,
    password_problems,
    verify_password,
)
from src.domains.auth.service import (
    AccountInactiveError,
    AccountNotFoundError,
    AuthenticationError,
    AuthService,
    EmailAlreadyRegisteredError,
    EmailAlreadyVerifiedError,
    InvalidCredentialsError,
    InvalidVerificationCodeError,
    SessionNotFoundError,
    TokenRefreshError,
    WeakPasswordError,
)

__all__ = [
    "JWTManager",
    "JWTError",
    "InvalidTokenError",
    "TokenExpiredError",
    "TokenPair",
    "TokenPayload",
    "PasswordHasher",
    "hash_password",
    "password_problems",
    "verify_password",
    "AuthService",
    "AuthenticationError",
    "AccountInactiveError",
    "EmailAlreadyRegisteredError",
    "EmailAlreadyVerifiedError",
    "InvalidCredentialsError",
    "InvalidVerificationCodeError",
    "AccountNotFoundError",
    "SessionNotFoundError",
    "TokenRefreshError",
    "WeakPasswordError",
]
