# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User and session API models."""

from datetime import datetime
from typing import Literal
from zoneinfo import available_timezones

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.common import LanguageCode

UserRole = Literal["learner", "author", "admin"]


class UserResponse(BaseModel):
    """A user's account and profile."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    role: str
    display_name: str
    language: str
    timezone: str
    daily_time_budget_minutes: int
    leaderboard_opt_in: bool
    email_verified: bool
    is_active: bool
    last_login_at: datetime | None
    created_at: datetime
    updated_at: datetime


class ProfileUpdateRequest(BaseModel):
    """Partial profile update; omitted fields are left unchanged."""

    display_name: str | None = Field(default=None, min_length=1, max_length=100)
    language: LanguageCode | None = None
    timezone: str | None = Field(default=None, max_length=64)
    daily_time_budget_minutes: int | None = Field(default=None, ge=5, le=480)
    leaderboard_opt_in: bool | None = None

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, value: str | None) -> str | None:
        if value is not None and value not in available_timezones():
            raise ValueError(f"Unknown timezone: {value}")
        return value


class UserAdminUpdateRequest(BaseModel):
    role: UserRole | None = None
    is_active: bool | None = None


class UserListResponse(BaseModel):
    users: list[UserResponse]
    total: int


class DeviceSessionResponse(BaseModel):
    device_id: str
    device_name: str | None
    platform: str
    created_at: datetime
    last_active_at: datetime
    current: bool = False


class SessionListResponse(BaseModel):
    sessions: list[DeviceSessionResponse]
