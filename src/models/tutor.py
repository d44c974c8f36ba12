# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""AI tutor API models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

TutorMode = Literal["explain", "practice", "hint", "review"]


class Citation(BaseModel):
    source: str
    lesson_id: str | None = None
    competency_id: str | None = None
    excerpt: str | None = None


class TutorChatRequest(BaseModel):
    """A learner question, optionally continuing a conversation."""

    message: str = Field(min_length=1, max_length=4000)
    conversation_id: str | None = None
    lesson_id: str | None = None
    language: Literal["th", "en"] = "en"
    tutor_mode: TutorMode = "explain"


class TutorChatResponse(BaseModel):
    content: str
    citations: list[Citation]
    conversation_id: str
    message_id: str


class ConversationMessage(BaseModel):
    id: str
    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: datetime
    citations: list[Citation] = Field(default_factory=list)
    rating: int | None = None
    feedback: str | None = None


class ConversationSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    lesson_id: str | None
    course_id: str | None
    language: str
    tutor_mode: str
    last_message_at: datetime
    created_at: datetime


class ConversationResponse(ConversationSummary):
    messages: list[ConversationMessage]


class ConversationListResponse(BaseModel):
    conversations: list[ConversationSummary]


class TutorFeedbackRequest(BaseModel):
    """Learner rating of one tutor reply."""

    conversation_id: str
    message_id: str
    rating: int = Field(ge=1, le=5)
    comment: str | None = Field(default=None, max_length=1000)
