# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Offline sync API endpoints.

This module provides endpoints for devices that work offline:
- POST /push - Upload queued changes
- POST /pull - Fetch server changes since a sync version
- GET /status - Devices, pending changes and open conflicts
- GET /devices - Devices that have synced
- DELETE /devices/{device_id} - Forget a device
- POST /conflicts/{queue_id}/resolve - Settle a conflict

Example:
    POST /api/v1/sync/push
    {
        "device_id": "ios-7f3a",
        "platform": "ios",
        "items": [
            {
                "id": "c-1",
                "operation": "update",
                "resource_type": "lesson_progress",
                "data": {"lesson_id": "...", "completion_percentage": 60, "time_spent": 300},
                "client_timestamp": "2025-01-15T10:30:00Z"
            }
        ]
    }
"""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from src.api.dependencies import DB, AuthenticatedUser
from src.api.middleware.rate_limit import RATE_LIMIT_SYNC, limiter
from src.domains.sync import (
    SyncConflictNotFoundError,
    SyncDeviceNotFoundError,
    SyncResolutionError,
    SyncService,
)
from src.models.common import MessageResponse
from src.models.sync import (
    DeviceSyncStateResponse,
    ResolveConflictRequest,
    SyncPullRequest,
    SyncPullResponse,
    SyncPushRequest,
    SyncPushResponse,
    SyncStatusResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/push", response_model=SyncPushResponse, summary="Push offline changes")
@limiter.limit(RATE_LIMIT_SYNC)
async def push_changes(
    request: Request,
    data: SyncPushRequest,
    db: DB,
    current_user: AuthenticatedUser,
) -> SyncPushResponse:
    """Apply queued changes and report each one as synced, failed or conflicted."""
    return await SyncService(db).process_sync_push(current_user.id, data)


@router.post("/pull", response_model=SyncPullResponse, summary="Pull server changes")
@limiter.limit(RATE_LIMIT_SYNC)
async def pull_changes(
    request: Request,
    data: SyncPullRequest,
    db: DB,
    current_user: AuthenticatedUser,
) -> SyncPullResponse:
    return await SyncService(db).pull_changes(current_user.id, data.device_id, data.last_sync_version)


@router.get("/status", response_model=SyncStatusResponse, summary="Get sync status")
async def get_sync_status(
    db: DB,
    current_user: AuthenticatedUser,
    device_id: str | None = None,
) -> SyncStatusResponse:
    return await SyncService(db).get_sync_status(current_user.id, device_id)


@router.get("/devices", response_model=list[DeviceSyncStateResponse], summary="List synced devices")
async def list_devices(db: DB, current_user: AuthenticatedUser) -> list[DeviceSyncStateResponse]:
    return await SyncService(db).list_devices(current_user.id)


@router.delete("/devices/{device_id}", response_model=MessageResponse, summary="Remove device")
async def remove_device(device_id: str, db: DB, current_user: AuthenticatedUser) -> MessageResponse:
    try:
        await SyncService(db).remove_device(current_user.id, device_id)
    except SyncDeviceNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return MessageResponse(message="Device removed")


@router.post(
    "/conflicts/{queue_id}/resolve",
    response_model=MessageResponse,
    summary="Resolve sync conflict",
)
async def resolve_conflict(
    queue_id: str,
    data: ResolveConflictRequest,
    db: DB,
    current_user: AuthenticatedUser,
) -> MessageResponse:
    """Keep the server copy, or re-apply the client or merged data.

    Raises:
        HTTPException: 404 if the conflict is unknown, 400 if re-applying fails.
    """
    try:
        await SyncService(db).resolve_conflict(
            current_user.id,
            queue_id,
            data.resolution,
            data.merged_data,
        )
    except SyncConflictNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except SyncResolutionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return MessageResponse(message="Conflict resolved")
