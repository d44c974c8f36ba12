# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User service for profiles and device sessions.

This module provides the UserService that handles:
- Reading and updating the caller's profile
- Listing and revoking the caller's device sessions
- Admin listing, role changes and deactivation

Example:
    >>> user_service = UserService(db_session)
    >>> profile = await user_service.update_profile(user_id, request)
    >>> sessions = await user_service.list_sessions(user_id, current_device_id)
"""

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models import DeviceSession, User
from src.models.user import (
    DeviceSessionResponse,
    ProfileUpdateRequest,
    SessionListResponse,
    UserAdminUpdateRequest,
    UserListResponse,
    UserResponse,
)

logger = logging.getLogger(__name__)


class UserServiceError(Exception):
    """Base exception for user service errors."""

    pass


class UserNotFoundError(UserServiceError):
    """Raised when a user is not found."""

    pass


class UserSessionNotFoundError(UserServiceError):
    """Raised when a device session is not found."""

    pass


class UserService:
    """Service for user profiles and sessions.

    Attributes:
        _db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get_user(self, user_id: str) -> UserResponse:
        """Get a user by ID.

        Raises:
            UserNotFoundError: If user not found.
        """
        return UserResponse.model_validate(await self._get_by_id(user_id))

    async def update_profile(self, user_id: str, request: ProfileUpdateRequest) -> UserResponse:
        """Apply a partial profile update.

        Raises:
            UserNotFoundError: If user not found.
        """
        user = await self._get_by_id(user_id)

        updates = request.model_dump(exclude_unset=True, exclude_none=True)
        for field_name, value in updates.items():
            setattr(user, field_name, value)

        await self._db.commit()
        await self._db.refresh(user)

        logger.info("User profile updated: %s (%s)", user_id, ", ".join(sorted(updates)))
        return UserResponse.model_validate(user)

    # =========================================================================
    # Sessions
    # =========================================================================

    async def list_sessions(self, user_id: str, current_device_id: str | None = None) -> SessionListResponse:
        """Active device sessions, most recently used first.

        Refresh token hashes are never returned.
        """
        result = await self._db.execute(
            select(DeviceSession)
            .where(DeviceSession.user_id == user_id)
            .order_by(DeviceSession.last_active_at.desc())
        )
        return SessionListResponse(
            sessions=[
                DeviceSessionResponse(
                    device_id=s.device_id,
                    device_name=s.device_name,
                    platform=s.platform,
                    created_at=s.created_at,
                    last_active_at=s.last_active_at,
                    current=s.device_id == current_device_id,
                )
                for s in result.scalars().all()
            ]
        )

    async def revoke_session(self, user_id: str, device_id: str) -> None:
        """Log one device out.

        Raises:
            UserSessionNotFoundError: If the device has no session.
        """
        result = await self._db.execute(
            select(DeviceSession).where(
                DeviceSession.user_id == user_id,
                DeviceSession.device_id == device_id,
            )
        )
        session = result.scalar_one_or_none()
        if session is None:
            raise UserSessionNotFoundError("Session not found")

        await self._db.delete(session)
        await self._db.commit()
        logger.info("Device session removed: %s (device=%s)", user_id, device_id)

    # =========================================================================
    # Administration
    # =========================================================================

    async def list_users(
        self,
        role: str | None = None,
        search: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> UserListResponse:
        """List users with optional role filter and name/email search."""
        conditions = []
        if role:
            conditions.append(User.role == role)
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(User.email.ilike(pattern), User.display_name.ilike(pattern)))

        count_result = await self._db.execute(
            select(func.count()).select_from(User).where(*conditions)
        )
        total = count_result.scalar() or 0

        result = await self._db.execute(
            select(User).where(*conditions).order_by(User.created_at.desc()).offset(offset).limit(limit)
        )
        return UserListResponse(
            users=[UserResponse.model_validate(u) for u in result.scalars().all()],
            total=total,
        )

    async def admin_update(self, user_id: str, request: UserAdminUpdateRequest) -> UserResponse:
        """Change a user's role or active flag.

        Deactivating a user also ends all of their sessions.
        """
        user = await self._get_by_id(user_id)
        if request.role is not None:
            user.role = request.role
        if request.is_active is not None:
            user.is_active = request.is_active
            if not request.is_active:
                result = await self._db.execute(
                    select(DeviceSession).where(DeviceSession.user_id == user_id)
                )
                for session in result.scalars().all():
                    await self._db.delete(session)

        await self._db.commit()
        await self._db.refresh(user)

        logger.info("User %s updated by admin: role=%s, active=%s", user_id, user.role, user.is_active)
        return UserResponse.model_validate(user)

    async def _get_by_id(self, user_id: str) -> User:
        user = await self._db.get(User, user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return user
