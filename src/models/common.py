# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared API models."""

from typing import Literal

from pydantic import BaseModel, Field

LanguageCode = Literal["th", "en"]


class BilingualText(BaseModel):
    """Text in Thai (required) and English (optional)."""

    th: str = Field(min_length=1, description="Thai text")
    en: str | None = Field(default=None, description="English text")


class BilingualTextUpdate(BaseModel):
    """Partial bilingual text used by PATCH endpoints."""

    th: str | None = Field(default=None, min_length=1)
    en: str | None = None


class MessageResponse(BaseModel):
    """Plain acknowledgement response."""

    message: str = Field(description="Human readable result")


class CountResponse(BaseModel):
    """Number of records affected by a bulk operation."""

    count: int = Field(ge=0, description="Records affected")
