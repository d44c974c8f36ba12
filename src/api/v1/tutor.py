# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""AI tutor API endpoints.

This module provides endpoints for lesson-grounded tutoring:
- POST /chat - Ask the tutor a question
- GET /conversations - List own conversations
- GET /conversations/{conversation_id} - Conversation with messages
- DELETE /conversations/{conversation_id} - Delete a conversation
- POST /feedback - Rate an assistant message

Example:
    POST /api/v1/tutor/chat
    {
        "message": "ทำไมเศษส่วนต้องมีตัวส่วนเท่ากันก่อนบวก",
        "lesson_id": "...",
        "language": "th"
    }
"""

import logging
from typing import NoReturn

from fastapi import APIRouter, HTTPException, Query, Request, status

from src.api.dependencies import DB, AuthenticatedUser
from src.api.middleware.rate_limit import RATE_LIMIT_TUTOR, limiter
from src.domains.tutor import (
    ConversationAccessDeniedError,
    TutorService,
    TutorServiceError,
    TutorUnavailableError,
)
from src.models.common import MessageResponse
from src.models.tutor import (
    ConversationListResponse,
    ConversationResponse,
    TutorChatRequest,
    TutorChatResponse,
    TutorFeedbackRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def raise_tutor_error(error: TutorServiceError) -> NoReturn:
    """Translate a tutor service error to an HTTP error."""
    if isinstance(error, ConversationAccessDeniedError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(error, TutorUnavailableError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_404_NOT_FOUND
    raise HTTPException(status_code=code, detail=str(error))


@router.post("/chat", response_model=TutorChatResponse, summary="Ask the tutor")
@limiter.limit(RATE_LIMIT_TUTOR)
async def chat(
    request: Request,
    data: TutorChatRequest,
    db: DB,
    current_user: AuthenticatedUser,
) -> TutorChatResponse:
    """Answer a question, grounded on the lesson when one is given.

    Starts a new conversation when ``conversation_id`` is omitted.
    """
    try:
        return await TutorService(db).chat(current_user.id, data)
    except TutorServiceError as e:
        raise_tutor_error(e)


@router.get("/conversations", response_model=ConversationListResponse, summary="List conversations")
async def list_conversations(
    db: DB,
    current_user: AuthenticatedUser,
    limit: int = Query(default=20, ge=1, le=100),
) -> ConversationListResponse:
    return await TutorService(db).list_conversations(current_user.id, limit)


@router.get(
    "/conversations/{conversation_id}",
    response_model=ConversationResponse,
    summary="Get conversation",
)
async def get_conversation(conversation_id: str, db: DB, current_user: AuthenticatedUser) -> ConversationResponse:
    try:
        return await TutorService(db).get_conversation(current_user.id, conversation_id)
    except TutorServiceError as e:
        raise_tutor_error(e)


@router.delete(
    "/conversations/{conversation_id}",
    response_model=MessageResponse,
    summary="Delete conversation",
)
async def delete_conversation(conversation_id: str, db: DB, current_user: AuthenticatedUser) -> MessageResponse:
    try:
        await TutorService(db).delete_conversation(current_user.id, conversation_id)
    except TutorServiceError as e:
        raise_tutor_error(e)
    return MessageResponse(message="Conversation deleted")


@router.post("/feedback", response_model=MessageResponse, summary="Rate a tutor reply")
async def rate_message(data: TutorFeedbackRequest, db: DB, current_user: AuthenticatedUser) -> MessageResponse:
    try:
        await TutorService(db).rate_message(current_user.id, data)
    except TutorServiceError as e:
        raise_tutor_error(e)
    return MessageResponse(message="Feedback recorded")
