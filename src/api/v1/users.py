# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User profile API endpoints.

This module provides endpoints for the signed-in user:
- GET /me - Get own profile
- PATCH /me - Update own profile
- GET /me/sessions - List device sessions
- DELETE /me/sessions/{device_id} - Log one device out

Administrative user management lives in the admin router.

Example:
    PATCH /api/v1/users/me
    {
        "language": "en",
        "timezone": "Asia/Bangkok",
        "daily_time_budget_minutes": 45
    }
"""

import logging

from fastapi import APIRouter, HTTPException, status

from src.api.dependencies import DB, AuthenticatedUser
from src.domains.user import UserNotFoundError, UserService, UserSessionNotFoundError
from src.models.common import MessageResponse
from src.models.user import ProfileUpdateRequest, SessionListResponse, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/me", response_model=UserResponse, summary="Get own profile")
async def get_me(db: DB, current_user: AuthenticatedUser) -> UserResponse:
    try:
        return await UserService(db).get_user(current_user.id)
    except UserNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.patch("/me", response_model=UserResponse, summary="Update own profile")
async def update_me(
    data: ProfileUpdateRequest,
    db: DB,
    current_user: AuthenticatedUser,
) -> UserResponse:
    """Update display name, language, timezone, time budget or leaderboard opt-in."""
    try:
        return await UserService(db).update_profile(current_user.id, data)
    except UserNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/me/sessions", response_model=SessionListResponse, summary="List device sessions")
async def list_sessions(db: DB, current_user: AuthenticatedUser) -> SessionListResponse:
    return await UserService(db).list_sessions(current_user.id, current_user.device_id)


@router.delete(
    "/me/sessions/{device_id}",
    response_model=MessageResponse,
    summary="Revoke a device session",
)
async def revoke_session(device_id: str, db: DB, current_user: AuthenticatedUser) -> MessageResponse:
    try:
        await UserService(db).revoke_session(current_user.id, device_id)
    except UserSessionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return MessageResponse(message="Session revoked")
