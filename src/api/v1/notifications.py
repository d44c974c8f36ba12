# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification center API endpoints.

This module provides endpoints for the signed-in user's notifications:
- GET / - List notifications (unread filter, type filter, paging)
- GET /unread-count - Number of unread notifications
- POST /{notification_id}/read - Mark one as read
- POST /read-all - Mark all as read
- DELETE /{notification_id} - Delete one
- GET /preferences - Channel, type and quiet hour preferences
- PATCH /preferences - Update preferences
- POST /push-tokens - Register a device push token
- DELETE /push-tokens - Remove a device push token
"""

import logging

from fastapi import APIRouter, HTTPException, Query, status

from src.api.dependencies import DB, AuthenticatedUser
from src.infrastructure.notifications import NotificationNotFoundError, NotificationService
from src.models.common import CountResponse, MessageResponse
from src.models.notification import (
    NotificationListResponse,
    NotificationPreferencesResponse,
    NotificationPreferencesUpdateRequest,
    NotificationResponse,
    NotificationType,
    PushTokenDeleteRequest,
    PushTokenRequest,
    UnreadCountResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=NotificationListResponse, summary="List notifications")
async def list_notifications(
    db: DB,
    current_user: AuthenticatedUser,
    unread_only: bool = False,
    notification_type: NotificationType | None = Query(default=None, alias="type"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> NotificationListResponse:
    """Newest first, expired notifications excluded."""
    notifications, total, unread_count = await NotificationService(db).get_user_notifications(
        current_user.id,
        unread_only=unread_only,
        notification_type=notification_type,
        limit=limit,
        offset=offset,
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        total=total,
        unread_count=unread_count,
    )


@router.get("/unread-count", response_model=UnreadCountResponse, summary="Count unread notifications")
async def unread_count(db: DB, current_user: AuthenticatedUser) -> UnreadCountResponse:
    return UnreadCountResponse(unread_count=await NotificationService(db).get_unread_count(current_user.id))


@router.post("/read-all", response_model=CountResponse, summary="Mark all notifications read")
async def mark_all_read(db: DB, current_user: AuthenticatedUser) -> CountResponse:
    return CountResponse(count=await NotificationService(db).mark_all_as_read(current_user.id))


@router.post(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark notification read",
)
async def mark_read(notification_id: str, db: DB, current_user: AuthenticatedUser) -> NotificationResponse:
    try:
        notification = await NotificationService(db).mark_as_read(current_user.id, notification_id)
    except NotificationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return NotificationResponse.model_validate(notification)


@router.delete("/{notification_id}", response_model=MessageResponse, summary="Delete notification")
async def delete_notification(notification_id: str, db: DB, current_user: AuthenticatedUser) -> MessageResponse:
    try:
        await NotificationService(db).delete_notification(current_user.id, notification_id)
    except NotificationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return MessageResponse(message="Notification deleted")


# =============================================================================
# Preferences
# =============================================================================


@router.get(
    "/preferences",
    response_model=NotificationPreferencesResponse,
    summary="Get notification preferences",
)
async def get_preferences(db: DB, current_user: AuthenticatedUser) -> NotificationPreferencesResponse:
    preferences = await NotificationService(db).get_preferences(current_user.id)
    return NotificationPreferencesResponse.model_validate(preferences)


@router.patch(
    "/preferences",
    response_model=NotificationPreferencesResponse,
    summary="Update notification preferences",
)
async def update_preferences(
    data: NotificationPreferencesUpdateRequest,
    db: DB,
    current_user: AuthenticatedUser,
) -> NotificationPreferencesResponse:
    preferences = await NotificationService(db).update_preferences(current_user.id, data)
    return NotificationPreferencesResponse.model_validate(preferences)


@router.post("/push-tokens", response_model=MessageResponse, summary="Register push token")
async def register_push_token(
    data: PushTokenRequest,
    db: DB,
    current_user: AuthenticatedUser,
) -> MessageResponse:
    await NotificationService(db).register_push_token(current_user.id, data.token, data.platform)
    return MessageResponse(message="Push token registered")


@router.delete("/push-tokens", response_model=MessageResponse, summary="Remove push token")
async def remove_push_token(
    data: PushTokenDeleteRequest,
    db: DB,
    current_user: AuthenticatedUser,
) -> MessageResponse:
    await NotificationService(db).remove_push_token(current_user.id, data.token)
    return MessageResponse(message="Push token removed")
