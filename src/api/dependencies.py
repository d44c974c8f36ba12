# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get database sessions
- Get authenticated users and check roles
- Get service instances

Example:
    @router.get("/mastery/{user_id}")
    async def get_mastery(
        user_id: str,
        db: DB,
        current_user: AuthenticatedUser,
    ):
        ensure_self_or_admin(current_user, user_id)
        ...
"""

import logging
from typing import Annotated, AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.middleware.auth import CurrentUser, get_current_user
from src.core.config import get_settings
from src.domains.auth.jwt import JWTManager
from src.infrastructure.database.connection import (
    close_database,
    get_session,
    get_sessionmaker,
    init_database,
    DatabaseError,
)

logger = logging.getLogger(__name__)


async def init_db() -> None:
    """Initialize the database connection pool."""
    await init_database(get_settings())


async def close_db() -> None:
    """Close the database connection pool."""
    await close_database()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session.

    Yields:
        AsyncSession committed on success and rolled back on error.

    Raises:
        HTTPException: 503 if the database is not initialized.
    """
    try:
        get_sessionmaker()
    except DatabaseError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not initialized",
        )

    async with get_session() as session:
        yield session


# =========================================================================
# Authentication Dependencies
# =========================================================================


def get_optional_user(request: Request) -> CurrentUser | None:
    """Get current user if authenticated, None otherwise."""
    return get_current_user(request)


def require_auth(request: Request) -> CurrentUser:
    """Require authenticated user.

    Raises:
        HTTPException: 401 if not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_admin(request: Request) -> CurrentUser:
    """Require admin user.

    Raises:
        HTTPException: 401 if not authenticated, 403 if not admin.
    """
    user = require_auth(request)
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


def require_author_or_admin(request: Request) -> CurrentUser:
    """Require a user who may manage content.

    Raises:
        HTTPException: 401 if not authenticated, 403 for learners.
    """
    user = require_auth(request)
    if not user.is_author:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Author or admin access required",
        )
    return user


def ensure_self_or_admin(user: CurrentUser, user_id: str) -> None:
    """Learners may only act on their own user id.

    Raises:
        HTTPException: 403 when a non-admin targets another user.
    """
    if not user.can_act_for(user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only access your own data",
        )


# =========================================================================
# Service Dependencies
# =========================================================================


def get_jwt_manager() -> JWTManager:
    return JWTManager(get_settings().jwt)


# =========================================================================
# Type Aliases for Cleaner Endpoint Signatures
# =========================================================================

DB = Annotated[AsyncSession, Depends(get_db)]
OptionalUser = Annotated[CurrentUser | None, Depends(get_optional_user)]
AuthenticatedUser = Annotated[CurrentUser, Depends(require_auth)]
AdminUser = Annotated[CurrentUser, Depends(require_admin)]
AuthorOrAdmin = Annotated[CurrentUser, Depends(require_author_or_admin)]
JWT = Annotated[JWTManager, Depends(get_jwt_manager)]
