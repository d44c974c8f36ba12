# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for tutor prompts, the LLM client fallback and TutorService."""

import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from src.core.config.settings import LLMSettings
from src.core.intelligence.llm import LLMClient, LLMError, LLMResponse
from src.domains.tutor.prompts import (
    GENERAL_PROMPTS,
    HISTORY_LIMIT,
    build_messages,
    conversation_title,
    lesson_citations,
    lesson_grounding,
    system_prompt,
)
from src.domains.tutor.service import (
    ConversationAccessDeniedError,
    TutorMessageNotFoundError,
    TutorService,
    TutorUnavailableError,
)
from src.models.tutor import TutorChatRequest, TutorFeedbackRequest

TITLE = {"th": "เศษส่วน", "en": "Fractions"}
CONTENT = {"en": {"body": "A fraction has a numerator and a denominator."}}


def _lesson(**overrides) -> SimpleNamespace:
    values = dict(
        id="lesson-1",
        course_id="course-1",
        title=TITLE,
        content=CONTENT,
        competencies=[],
        learning_objectives=["Add fractions with like denominators"],
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestLessonGrounding:
    """Tests for rendering lesson content into the prompt."""

    def test_renders_sections(self) -> None:
        text = lesson_grounding(
            TITLE,
            CONTENT,
            [{"name": {"en": "Fractions"}, "description": {"en": "Part of a whole"}}],
            ["Add fractions"],
            "en",
        )

        assert text.startswith("# Lesson Content\n\n## Fractions")
        assert "- **Fractions**: Part of a whole" in text
        assert "## What You Will Learn\n\n- Add fractions" in text

    def test_falls_back_to_thai_content(self) -> None:
        content = {"th": {"body": "เศษส่วนประกอบด้วยตัวเศษและตัวส่วน"}}

        text = lesson_grounding(TITLE, content, [], [], "en")

        assert "ตัวเศษ" in text

    def test_empty_content(self) -> None:
        assert lesson_grounding(TITLE, {}, [], [], "en") == ""

    def test_system_prompt_selection(self) -> None:
        assert system_prompt("", "th") == GENERAL_PROMPTS["th"]
        assert "Lesson Content:\n# Lesson" in system_prompt("# Lesson", "en")
        assert system_prompt("", "fr") == GENERAL_PROMPTS["en"]


class TestBuildMessages:
    """Tests for the chat message window."""

    def test_history_is_windowed_and_system_skipped(self) -> None:
        history = [{"role": "user", "content": f"q{i}"} for i in range(15)]
        history[-1] = {"role": "system", "content": "hidden"}

        messages = build_messages("prompt", history, "next")

        assert messages[0] == {"role": "system", "content": "prompt"}
        assert messages[-1] == {"role": "user", "content": "next"}
        assert len(messages) == HISTORY_LIMIT - 1 + 2
        assert messages[1]["content"] == "q5"

    def test_citations(self) -> None:
        assert lesson_citations(None, "text") == []

        citation = lesson_citations("lesson-1", "x" * 300)[0]
        assert citation["lesson_id"] == "lesson-1"
        assert citation["excerpt"] == "x" * 200 + "..."

    def test_conversation_title(self) -> None:
        assert conversation_title("what?", TITLE, "th") == "เศษส่วน"
        assert conversation_title("  how   do  I add? ", None, "en") == "how do I add?"
        assert conversation_title("a" * 80, None, "en").endswith("...")


class TestLLMClient:
    """Tests for the unconfigured client fallback."""

    @pytest.mark.asyncio
    async def test_mock_reply_without_provider_key(self, monkeypatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        client = LLMClient(llm_settings=LLMSettings())

        response = await client.complete_with_messages([{"role": "user", "content": "What is 1/2?"}])

        assert client.configured is False
        assert response.is_mock is True
        assert '"What is 1/2?"' in response.content

    @pytest.mark.asyncio
    async def test_provider_key_enables_client(self) -> None:
        with patch.dict(os.environ, {"OPENAI_API_KEY": "sk-test"}):
            client = LLMClient(llm_settings=LLMSettings())

        assert client.configured is True

        with pytest.raises(ValueError):
            await client.complete_with_messages([])


@pytest.fixture
def llm():
    client = AsyncMock()
    client.complete_with_messages.return_value = LLMResponse(
        content="A fraction is part of a whole.", model="gpt-4o-mini"
    )
    return client


@pytest.fixture
def xapi():
    return AsyncMock()


@pytest.fixture
def service(mock_db, llm, xapi):
    return TutorService(db=mock_db, llm=llm, xapi=xapi)


class TestTutorChat:
    """Tests for TutorService.chat."""

    @pytest.mark.asyncio
    async def test_new_grounded_conversation(self, service, mock_db, llm, xapi) -> None:
        mock_db.get.return_value = _lesson()

        response = await service.chat(
            "user-1", TutorChatRequest(message="What is a fraction?", lesson_id="lesson-1")
        )

        assert response.content == "A fraction is part of a whole."
        assert response.citations[0].lesson_id == "lesson-1"

        conversation = mock_db.add.call_args[0][0]
        assert conversation.title == "Fractions"
        assert conversation.course_id == "course-1"
        assert [m["role"] for m in conversation.messages] == ["user", "assistant"]
        assert conversation.messages[1]["id"] == response.message_id

        sent = llm.complete_with_messages.call_args[0][0]
        assert "numerator" in sent[0]["content"]
        xapi.store_statement.assert_awaited_once()
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ungrounded_chat_uses_general_prompt(self, service, mock_db, llm) -> None:
        response = await service.chat("user-1", TutorChatRequest(message="Hi", language="th"))

        sent = llm.complete_with_messages.call_args[0][0]
        assert sent[0]["content"] == GENERAL_PROMPTS["th"]
        assert response.citations == []
        mock_db.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_other_users_conversation(self, service, mock_db) -> None:
        mock_db.get.return_value = SimpleNamespace(id="conv-1", user_id="user-2", messages=[])

        with pytest.raises(ConversationAccessDeniedError):
            await service.chat("user-1", TutorChatRequest(message="Hi", conversation_id="conv-1"))

    @pytest.mark.asyncio
    async def test_model_failure(self, service, llm, mock_db) -> None:
        llm.complete_with_messages.side_effect = LLMError("timeout")

        with pytest.raises(TutorUnavailableError):
            await service.chat("user-1", TutorChatRequest(message="Hi"))
        mock_db.commit.assert_not_awaited()


class TestRateMessage:
    """Tests for TutorService.rate_message."""

    @pytest.mark.asyncio
    async def test_rates_assistant_reply(self, service, mock_db) -> None:
        conversation = SimpleNamespace(
            id="conv-1",
            user_id="user-1",
            messages=[
                {"id": "m-1", "role": "user", "content": "Hi"},
                {"id": "m-2", "role": "assistant", "content": "Hello"},
            ],
        )
        mock_db.get.return_value = conversation

        await service.rate_message(
            "user-1",
            TutorFeedbackRequest(conversation_id="conv-1", message_id="m-2", rating=5, comment="ดีมาก"),
        )

        assert conversation.messages[1]["rating"] == 5
        assert conversation.messages[1]["feedback"] == "ดีมาก"

    @pytest.mark.asyncio
    async def test_user_message_cannot_be_rated(self, service, mock_db) -> None:
        mock_db.get.return_value = SimpleNamespace(
            id="conv-1",
            user_id="user-1",
            messages=[{"id": "m-1", "role": "user", "content": "Hi"}],
        )

        with pytest.raises(TutorMessageNotFoundError):
            await service.rate_message(
                "user-1",
                TutorFeedbackRequest(conversation_id="conv-1", message_id="m-1", rating=3),
            )
