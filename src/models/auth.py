# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication API models."""

from typing import Literal

from pydantic import BaseModel, EmailStr, Field

from src.models.common import LanguageCode
from src.models.user import UserResponse

DevicePlatform = Literal["web", "ios", "android"]


class DeviceInfo(BaseModel):
    device_id: str = Field(min_length=1, max_length=128)
    device_name: str | None = Field(default=None, max_length=200)
    platform: DevicePlatform = "web"


class RegisterRequest(DeviceInfo):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    display_name: str = Field(min_length=1, max_length=100)
    language: LanguageCode = "th"


class LoginRequest(DeviceInfo):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class VerifyEmailRequest(BaseModel):
    email: EmailStr
    otp: str = Field(pattern=r"^\d{6}$")


class ResendCodeRequest(BaseModel):
    email: EmailStr
    language: LanguageCode | None = None


class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_expires_in: int


class AuthResponse(TokenResponse):
    """Tokens plus the signed-in user."""

    user: UserResponse
