# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""AI tutor service.

This module provides the TutorService class for:
- Answering learner questions grounded on lesson content
- Keeping per-user conversations with citations
- Listing, reading and deleting conversations
- Recording learner ratings of tutor replies
"""

import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.intelligence.llm import LLMClient, LLMError
from src.domains.tutor.prompts import (
    build_messages,
    conversation_title,
    lesson_citations,
    lesson_grounding,
    system_prompt,
)
from src.domains.xapi import XAPIService, XAPIServiceError, statements
from src.infrastructure.database.models import Competency, Conversation, Lesson, new_id
from src.models.tutor import (
    ConversationListResponse,
    ConversationResponse,
    ConversationSummary,
    TutorChatRequest,
    TutorChatResponse,
    TutorFeedbackRequest,
)
from src.utils.datetime import format_iso, utc_now

logger = logging.getLogger(__name__)

DEFAULT_CONVERSATION_LIMIT = 20


class TutorServiceError(Exception):
    """Base exception for tutor service errors."""

    pass


class ConversationNotFoundError(TutorServiceError):
    """Raised when a conversation does not exist."""

    pass


class ConversationAccessDeniedError(TutorServiceError):
    """Raised when a user touches another user's conversation."""

    pass


class TutorLessonNotFoundError(TutorServiceError):
    """Raised when the grounding lesson does not exist."""

    pass


class TutorMessageNotFoundError(TutorServiceError):
    """Raised when a rated message is not in the conversation."""

    pass


class TutorUnavailableError(TutorServiceError):
    """Raised when the language model call fails."""

    pass


class TutorService:
    """Service for tutor conversations.

    Attributes:
        db: Async database session.
    """

    def __init__(
        self,
        db: AsyncSession,
        llm: LLMClient | None = None,
        xapi: XAPIService | None = None,
    ) -> None:
        self.db = db
        self._llm = llm or LLMClient()
        self._xapi = xapi or XAPIService(db)

    # =========================================================================
    # Chat
    # =========================================================================

    async def chat(self, user_id: str, request: TutorChatRequest) -> TutorChatResponse:
        """Answer a learner question.

        A new conversation is started when no conversation id is given.
        The reply is grounded on the request's lesson, or on the lesson the
        conversation was started for.

        Args:
            user_id: Learner ID.
            request: Question and context.

        Returns:
            The reply with its citations.

        Raises:
            ConversationNotFoundError: If the conversation does not exist.
            ConversationAccessDeniedError: If it belongs to someone else.
            TutorLessonNotFoundError: If the lesson does not exist.
            TutorUnavailableError: If the model call fails.
        """
        lesson = None
        lesson_id = request.lesson_id
        if request.conversation_id:
            conversation = await self._get_owned(user_id, request.conversation_id)
            lesson_id = lesson_id or conversation.lesson_id
            if lesson_id:
                lesson = await self._get_lesson(lesson_id)
        else:
            if lesson_id:
                lesson = await self._get_lesson(lesson_id)
            conversation = Conversation(
                id=new_id(),
                user_id=user_id,
                lesson_id=lesson_id,
                course_id=lesson.course_id if lesson else None,
                title=conversation_title(
                    request.message, lesson.title if lesson else None, request.language
                ),
                language=request.language,
                tutor_mode=request.tutor_mode,
                messages=[],
                last_message_at=utc_now(),
            )
            self.db.add(conversation)

        grounding = await self._grounding(lesson, request.language) if lesson else ""
        messages = build_messages(
            system_prompt(grounding, request.language),
            conversation.messages or [],
            request.message,
        )

        try:
            reply = await self._llm.complete_with_messages(messages)
        except LLMError as e:
            logger.error("Tutor reply failed for conversation %s: %s", conversation.id, e)
            raise TutorUnavailableError("Failed to get tutor response") from e

        citations = lesson_citations(lesson_id, grounding)
        now = utc_now()
        assistant_message = {
            "id": str(uuid.uuid4()),
            "role": "assistant",
            "content": reply.content,
            "timestamp": format_iso(now),
            "citations": citations,
        }
        conversation.messages = [
            *(conversation.messages or []),
            {
                "id": str(uuid.uuid4()),
                "role": "user",
                "content": request.message,
                "timestamp": format_iso(now),
                "citations": [],
            },
            assistant_message,
        ]
        conversation.last_message_at = now

        await self._record_question(user_id, conversation, request.message)
        await self.db.commit()

        logger.info(
            "Tutor chat completed: user=%s, conversation=%s, message_length=%d, response_length=%d",
            user_id,
            conversation.id,
            len(request.message),
            len(reply.content),
        )

        return TutorChatResponse(
            content=reply.content,
            citations=citations,
            conversation_id=conversation.id,
            message_id=assistant_message["id"],
        )

    # =========================================================================
    # Conversations
    # =========================================================================

    async def get_conversation(self, user_id: str, conversation_id: str) -> ConversationResponse:
        """Full message history of one conversation."""
        conversation = await self._get_owned(user_id, conversation_id)
        return ConversationResponse.model_validate(conversation)

    async def list_conversations(
        self,
        user_id: str,
        limit: int = DEFAULT_CONVERSATION_LIMIT,
    ) -> ConversationListResponse:
        """Most recently active conversations first."""
        result = await self.db.execute(
            select(Conversation)
            .where(Conversation.user_id == user_id)
            .order_by(Conversation.last_message_at.desc())
            .limit(limit)
        )
        return ConversationListResponse(
            conversations=[ConversationSummary.model_validate(c) for c in result.scalars().all()]
        )

    async def delete_conversation(self, user_id: str, conversation_id: str) -> None:
        conversation = await self._get_owned(user_id, conversation_id)
        await self.db.delete(conversation)
        await self.db.commit()
        logger.info("Conversation deleted: user=%s, conversation=%s", user_id, conversation_id)

    async def rate_message(self, user_id: str, request: TutorFeedbackRequest) -> None:
        """Store a 1-5 rating on a tutor reply.

        Raises:
            TutorMessageNotFoundError: If the message is not an assistant
                reply in the conversation.
        """
        conversation = await self._get_owned(user_id, request.conversation_id)

        messages: list[dict[str, Any]] = []
        found = False
        for message in conversation.messages or []:
            entry = dict(message)
            if entry.get("id") == request.message_id and entry.get("role") == "assistant":
                entry["rating"] = request.rating
                entry["feedback"] = request.comment
                found = True
            messages.append(entry)

        if not found:
            raise TutorMessageNotFoundError(f"Message not found: {request.message_id}")

        conversation.messages = messages
        await self.db.commit()
        logger.info(
            "Tutor reply rated: conversation=%s, message=%s, rating=%d",
            request.conversation_id,
            request.message_id,
            request.rating,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_owned(self, user_id: str, conversation_id: str) -> Conversation:
        conversation = await self.db.get(Conversation, conversation_id)
        if conversation is None:
            raise ConversationNotFoundError("Conversation not found")
        if conversation.user_id != user_id:
            raise ConversationAccessDeniedError("Unauthorized")
        return conversation

    async def _get_lesson(self, lesson_id: str) -> Lesson:
        lesson = await self.db.get(Lesson, lesson_id)
        if lesson is None:
            raise TutorLessonNotFoundError("Lesson not found")
        return lesson

    async def _grounding(self, lesson: Lesson, language: str) -> str:
        competencies: list[dict[str, Any]] = []
        if lesson.competencies:
            result = await self.db.execute(
                select(Competency).where(Competency.id.in_(lesson.competencies))
            )
            competencies = [
                {"name": c.name, "description": c.description} for c in result.scalars().all()
            ]
        return lesson_grounding(
            lesson.title,
            lesson.content or {},
            competencies,
            lesson.learning_objectives or [],
            language,
        )

    async def _record_question(self, user_id: str, conversation: Conversation, question: str) -> None:
        statement = statements.tutor_question(
            user_id,
            conversation.id,
            question,
            conversation.tutor_mode,
            language=conversation.language,
        )
        try:
            await self._xapi.store_statement(statement, user_id=user_id, commit=False)
        except XAPIServiceError as e:
            logger.warning("Failed to record tutor statement: %s", e)
