# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bilingual (Thai/English) content resolution.

Text fields are stored as ``{"th": ..., "en": ...}``. Thai is the
authoring language and always the last resort. When the requested
language is missing the fallback text is returned with a visible marker
such as `` [Not available in EN]`` so learners know why they see Thai.

Example:
    >>> get_bilingual_text({"th": "สวัสดี"}, "en")
    'สวัสดี [Not available in EN]'
"""

import logging
from collections.abc import Mapping
from typing import Any, Literal

logger = logging.getLogger(__name__)

Language = Literal["th", "en"]

SUPPORTED_LANGUAGES: tuple[Language, ...] = ("th", "en")
CONTENT_NOT_AVAILABLE = "Content not available"


def _marker(language: str) -> str:
    return f" [Not available in {language.upper()}]"


def get_bilingual_text(
    content: Mapping[str, Any] | None,
    language: str,
    fallback_language: str = "th",
    warn_on_fallback: bool = False,
) -> str:
    """Resolve a bilingual text field.

    Priority: requested language, fallback language, Thai.

    Args:
        content: Bilingual mapping or None.
        language: Requested language code.
        fallback_language: Language to try second.
        warn_on_fallback: Log a warning when a fallback is used.

    Returns:
        The resolved text, marked when it is not in the requested language.
    """
    if not content:
        return CONTENT_NOT_AVAILABLE

    if content.get(language):
        return content[language]

    for candidate in (fallback_language, "th"):
        if candidate and content.get(candidate):
            if warn_on_fallback:
                logger.warning(
                    "Using %s fallback for content requested in %s", candidate, language
                )
            return f"{content[candidate]}{_marker(language)}"

    logger.error("No bilingual content available in any language")
    return CONTENT_NOT_AVAILABLE


def localize(content: Mapping[str, Any] | None, language: str) -> str:
    """Resolve a bilingual field preferring ``language`` then English then Thai.

    Used for learner-facing quiz text where a marker would be noise.
    """
    if not content:
        return ""
    return content.get(language) or content.get("en") or content.get("th") or ""


def has_content_in_language(content: Mapping[str, Any] | None, language: str) -> bool:
    """Check whether a bilingual field has text in ``language``."""
    return bool(content and content.get(language))


def get_available_languages(content: Mapping[str, Any] | None) -> list[Language]:
    """Languages with non-empty text, Thai first."""
    if not content:
        return []
    return [lang for lang in SUPPORTED_LANGUAGES if content.get(lang)]


def _transform_fields(obj: Mapping[str, Any], fields: tuple[str, ...], language: str) -> dict[str, Any]:
    result = dict(obj)
    for field_name in fields:
        value = obj.get(field_name)
        if isinstance(value, Mapping) and ("th" in value or "en" in value):
            result[field_name] = get_bilingual_text(value, language)
    return result


def transform_course(course: Mapping[str, Any], language: str) -> dict[str, Any]:
    """Localise a course's title and description."""
    return _transform_fields(course, ("title", "description"), language)


def transform_module(module: Mapping[str, Any], language: str) -> dict[str, Any]:
    """Localise a module's title and description."""
    return _transform_fields(module, ("title", "description"), language)


def transform_competency(competency: Mapping[str, Any], language: str) -> dict[str, Any]:
    """Localise a competency's name and description."""
    return _transform_fields(competency, ("name", "description"), language)


def transform_lesson(lesson: Mapping[str, Any], language: str) -> dict[str, Any]:
    """Localise a lesson's title and pick its content block.

    When the lesson has no content in ``language`` the Thai block is
    returned with ``_fallback`` set and an explanatory ``_message``.
    """
    result = _transform_fields(lesson, ("title",), language)
    content = lesson.get("content") or {}

    if content.get(language):
        result["content"] = dict(content[language])
        return result

    fallback = dict(content.get("th") or {})
    fallback["_fallback"] = True
    fallback["_message"] = (
        f"Content not available in {language.upper()}, showing Thai version"
    )
    result["content"] = fallback
    return result
