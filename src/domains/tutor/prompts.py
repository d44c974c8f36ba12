# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tutor prompts and lesson grounding.

The tutor answers only from the lesson the learner is studying. The
lesson is rendered as markdown (title, body, competencies, learning
objectives) and embedded in a Thai or English system prompt.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from src.domains.bilingual import localize

HISTORY_LIMIT = 10
EXCERPT_LENGTH = 200

GENERAL_PROMPTS = {
    "th": "คุณเป็นผู้ช่วยสอนที่เป็นมิตรและให้ความช่วยเหลือ ตอบคำถามเกี่ยวกับการเรียนรู้ได้",
    "en": "You are a friendly and helpful AI tutor. Answer questions about learning topics.",
}

_GROUNDED_PROMPTS = {
    "th": """คุณเป็นผู้ช่วยสอนที่เป็นมิตรและให้ความช่วยเหลือในระบบการเรียนรู้แบบปรับตัว

กฎสำคัญ:
1. คุณต้องตอบคำถามโดยอ้างอิงจากเนื้อหาบทเรียนที่ให้มาเท่านั้น
2. ห้ามสร้างข้อมูลหรือตอบนอกเนื้อหาบทเรียน
3. หากคำถามอยู่นอกเนื้อหาบทเรียน ให้บอกว่าคุณสามารถช่วยเฉพาะเรื่องที่อยู่ในบทเรียนนี้เท่านั้น
4. ให้คำอธิบายที่ชัดเจน ใช้ตัวอย่างจากเนื้อหาบทเรียน
5. ส่งเสริมการเรียนรู้โดยการถามคำถามกลับเพื่อตรวจสอบความเข้าใจ
6. ใช้ภาษาไทยในการตอบทั้งหมด

เนื้อหาบทเรียน:
{content}

จำไว้ว่า: ตอบเฉพาะจากเนื้อหาด้านบนเท่านั้น ห้ามเพิ่มเติมข้อมูลจากที่อื่น""",
    "en": """You are a friendly and helpful AI tutor in an adaptive learning system.

Important Rules:
1. You MUST answer questions based ONLY on the lesson content provided below
2. DO NOT generate information or answer questions outside the lesson content
3. If a question is outside the lesson scope, politely explain that you can only help with this lesson's content
4. Provide clear explanations using examples from the lesson content
5. Encourage learning by asking follow-up questions to check understanding
6. Use English in all your responses

Lesson Content:
{content}

Remember: Only answer based on the content above. Do not add information from other sources.""",
}


def _pick(text: Mapping[str, Any] | None, language: str) -> str:
    """Requested language, else Thai, without a fallback marker."""
    if not text:
        return ""
    return str(text.get(language) or text.get("th") or "")


def lesson_grounding(
    title: Mapping[str, Any],
    content: Mapping[str, Any],
    competencies: Sequence[Mapping[str, Any]],
    learning_objectives: Sequence[str],
    language: str,
) -> str:
    """Render a lesson as markdown for the system prompt.

    Args:
        title: Bilingual lesson title.
        content: Lesson content keyed by language, each with a ``body``.
        competencies: Dicts with bilingual ``name`` and ``description``.
        learning_objectives: Plain objective strings.
        language: th or en.

    Returns:
        Markdown text, or an empty string when the lesson has no content.
    """
    block = content.get(language) or content.get("th")
    if not block:
        return ""

    text = "# Lesson Content\n\n"
    text += f"## {_pick(title, language)}\n\n"
    if block.get("body"):
        text += f"{block['body']}\n\n"

    if competencies:
        text += "## Learning Objectives (Competencies)\n\n"
        for competency in competencies:
            name = _pick(competency.get("name"), language)
            description = _pick(competency.get("description"), language)
            text += f"- **{name}**: {description}\n"
        text += "\n"

    if learning_objectives:
        text += "## What You Will Learn\n\n"
        for objective in learning_objectives:
            text += f"- {objective}\n"
        text += "\n"

    return text


def system_prompt(grounding: str, language: str) -> str:
    """Grounded prompt when lesson text exists, else the general prompt."""
    lang = language if language in GENERAL_PROMPTS else "en"
    if not grounding:
        return GENERAL_PROMPTS[lang]
    return _GROUNDED_PROMPTS[lang].format(content=grounding)


def build_messages(
    prompt: str,
    history: Sequence[Mapping[str, Any]],
    question: str,
) -> list[dict[str, str]]:
    """System prompt, recent history and the new question in chat format.

    Only the last ``HISTORY_LIMIT`` stored messages are considered and
    system messages among them are skipped.
    """
    messages = [{"role": "system", "content": prompt}]
    for message in history[-HISTORY_LIMIT:]:
        if message.get("role") == "system":
            continue
        messages.append({"role": message["role"], "content": message["content"]})
    messages.append({"role": "user", "content": question})
    return messages


def lesson_citations(lesson_id: str | None, grounding: str) -> list[dict[str, Any]]:
    """A single citation pointing at the grounding lesson."""
    if not lesson_id:
        return []
    return [
        {
            "source": "Lesson Content",
            "lesson_id": lesson_id,
            "excerpt": grounding[:EXCERPT_LENGTH] + "...",
        }
    ]


def conversation_title(question: str, lesson_title: Mapping[str, Any] | None, language: str) -> str:
    """Lesson title when grounded, otherwise the opening question."""
    if lesson_title:
        return localize(lesson_title, language)[:200]
    title = " ".join(question.split())
    return title if len(title) <= 60 else title[:57] + "..."
