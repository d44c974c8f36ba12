# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Builders for the statements the platform emits itself."""

import uuid
from typing import Any

from src.domains.xapi.vocabulary import (
    PLATFORM_HOME_PAGE,
    XAPI_ACTIVITY_TYPES,
    XAPI_EXTENSIONS,
    XAPI_VERBS,
    XAPI_VERSION,
)
from src.utils.datetime import format_iso, utc_now


def build_statement(
    user_id: str,
    verb: str,
    activity_id: str,
    activity_type: str = XAPI_ACTIVITY_TYPES["lesson"],
    result: dict[str, Any] | None = None,
    platform: str = "web",
    language: str = "en",
    extensions: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a valid statement for a platform user.

    Args:
        user_id: Actor account name.
        verb: Key of ``XAPI_VERBS``.
        activity_id: Object IRI.
        activity_type: Activity type IRI.
        result: Optional xAPI result block.
        platform: web, ios or android.
        language: th or en.
        extensions: Extra context extensions.

    Returns:
        Statement JSON.
    """
    statement: dict[str, Any] = {
        "id": str(uuid.uuid4()),
        "actor": {
            "objectType": "Agent",
            "account": {"homePage": PLATFORM_HOME_PAGE, "name": user_id},
        },
        "verb": XAPI_VERBS[verb],
        "object": {
            "id": activity_id,
            "objectType": "Activity",
            "definition": {"type": activity_type},
        },
        "context": {
            "platform": platform,
            "language": language,
            "extensions": {
                XAPI_EXTENSIONS["platform"]: platform,
                XAPI_EXTENSIONS["language"]: language,
                **(extensions or {}),
            },
        },
        "timestamp": format_iso(utc_now()),
        "version": XAPI_VERSION,
    }
    if result:
        statement["result"] = result
    return statement


def lesson_iri(lesson_id: str) -> str:
    return f"{PLATFORM_HOME_PAGE}/lessons/{lesson_id}"


def quiz_iri(quiz_id: str) -> str:
    return f"{PLATFORM_HOME_PAGE}/quizzes/{quiz_id}"


def lesson_launched(user_id: str, lesson_id: str, platform: str = "web", language: str = "en") -> dict[str, Any]:
    return build_statement(
        user_id,
        "launched",
        lesson_iri(lesson_id),
        XAPI_ACTIVITY_TYPES["lesson"],
        platform=platform,
        language=language,
    )


def lesson_completed(
    user_id: str,
    lesson_id: str,
    duration: str = "PT15M",
    platform: str = "web",
    language: str = "en",
) -> dict[str, Any]:
    """Lesson completion with an ISO 8601 duration."""
    return build_statement(
        user_id,
        "completed",
        lesson_iri(lesson_id),
        XAPI_ACTIVITY_TYPES["lesson"],
        result={"completion": True, "duration": duration},
        platform=platform,
        language=language,
    )


def question_answered(
    user_id: str,
    quiz_id: str,
    question_id: str,
    correct: bool,
    response: str,
    hints_used: int = 0,
    platform: str = "web",
    language: str = "en",
) -> dict[str, Any]:
    return build_statement(
        user_id,
        "answered",
        f"{quiz_iri(quiz_id)}/questions/{question_id}",
        XAPI_ACTIVITY_TYPES["question"],
        result={"success": correct, "response": response},
        platform=platform,
        language=language,
        extensions={XAPI_EXTENSIONS["hints_used"]: hints_used},
    )


def quiz_result(
    user_id: str,
    quiz_id: str,
    passed: bool,
    raw: float,
    maximum: float,
    duration: str = "PT10M",
    platform: str = "web",
    language: str = "en",
) -> dict[str, Any]:
    """Passed or failed statement with a scaled score."""
    return build_statement(
        user_id,
        "passed" if passed else "failed",
        quiz_iri(quiz_id),
        XAPI_ACTIVITY_TYPES["assessment"],
        result={
            "score": {"raw": raw, "max": maximum, "scaled": raw / maximum if maximum else 0.0},
            "success": passed,
            "completion": True,
            "duration": duration,
        },
        platform=platform,
        language=language,
    )


def tutor_question(
    user_id: str,
    session_id: str,
    question: str,
    mode: str,
    platform: str = "web",
    language: str = "en",
) -> dict[str, Any]:
    return build_statement(
        user_id,
        "tutor_asked",
        f"{PLATFORM_HOME_PAGE}/tutor/sessions/{session_id}",
        XAPI_ACTIVITY_TYPES["tutor_session"],
        result={"response": question},
        platform=platform,
        language=language,
        extensions={XAPI_EXTENSIONS["tutor_mode"]: mode},
    )
