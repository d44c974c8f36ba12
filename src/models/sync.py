# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Offline sync API models."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.utils.datetime import ensure_utc

SyncOperation = Literal["create", "update", "delete"]
Platform = Literal["web", "ios", "android"]


class SyncItem(BaseModel):
    """One change recorded on a device while offline.

    ``resource_type`` is left open so an unsupported type is reported
    per item instead of failing the whole push.
    """

    id: str | None = Field(default=None, max_length=128, description="Client-side change id")
    operation: SyncOperation
    resource_type: str = Field(min_length=1, max_length=30)
    resource_id: str | None = Field(default=None, max_length=64)
    data: dict[str, Any] = Field(default_factory=dict)
    client_timestamp: datetime

    @field_validator("client_timestamp")
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class SyncPushRequest(BaseModel):
    device_id: str = Field(min_length=1, max_length=128)
    platform: Platform = "web"
    app_version: str | None = Field(default=None, max_length=30)
    items: list[SyncItem] = Field(min_length=1, max_length=500)


class SyncFailure(BaseModel):
    id: str | None
    error: str


class SyncConflict(BaseModel):
    id: str | None
    queue_id: str
    client_data: dict[str, Any]
    server_data: dict[str, Any] | None
    resolution: str


class SyncPushResponse(BaseModel):
    """Per-item outcome of a push."""

    synced_items: list[str]
    failed_items: list[SyncFailure]
    conflicts: list[SyncConflict]
    sync_version: int
    server_timestamp: datetime


class SyncPullRequest(BaseModel):
    device_id: str = Field(min_length=1, max_length=128)
    last_sync_version: int = Field(default=0, ge=0)
    resource_types: list[str] | None = None


class SyncChange(BaseModel):
    resource_type: str
    resource_id: str
    operation: SyncOperation
    data: dict[str, Any]
    server_timestamp: datetime


class SyncPullResponse(BaseModel):
    changes: list[SyncChange]
    sync_version: int
    has_more: bool = False


class DeviceSyncStateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    device_id: str
    platform: str
    app_version: str | None
    last_sync_at: datetime | None
    last_sync_version: int
    pending_count: int
    failed_count: int
    conflict_count: int


class ConflictSummary(BaseModel):
    id: str
    resource_type: str
    client_data: dict[str, Any]
    server_data: dict[str, Any] | None
    resolution: str | None
    created_at: datetime


class SyncStatusResponse(BaseModel):
    devices: list[DeviceSyncStateResponse]
    pending_count: int
    conflict_count: int
    conflicts: list[ConflictSummary]


class ResolveConflictRequest(BaseModel):
    """How to settle a conflicted change."""

    resolution: Literal["use_server", "use_client", "use_merged"]
    merged_data: dict[str, Any] | None = None

    @model_validator(mode="after")
    def require_merged_data(self) -> "ResolveConflictRequest":
        if self.resolution == "use_merged" and not self.merged_data:
            raise ValueError("merged_data is required for use_merged")
        return self


class SyncCleanupRequest(BaseModel):
    days: int = Field(default=30, ge=1, le=365)
