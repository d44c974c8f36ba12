# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User domain package.

This package provides user profile and session management:
- UserService: profile, device sessions and admin updates
- Exceptions: User-related error types

Example:
    >>> from src.domains.user import UserService
    >>> service = UserService(db)
    >>> profile = await service.get_user(user_id)
"""

from src.domains.user.service import (
    UserNotFoundError,
    UserService,
    UserServiceError,
    UserSessionNotFoundError,
)

__all__ = [
    "UserService",
    "UserServiceError",
    "UserNotFoundError",
    "UserSessionNotFoundError",
]
