# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bilingual content domain."""

from src.domains.bilingual.content import (
    CONTENT_NOT_AVAILABLE,
    SUPPORTED_LANGUAGES,
    Language,
    get_available_languages,
    get_bilingual_text,
    has_content_in_language,
    localize,
    transform_competency,
    transform_course,
    transform_lesson,
    transform_module,
)

__all__ = [
    "CONTENT_NOT_AVAILABLE",
    "SUPPORTED_LANGUAGES",
    "Language",
    "get_available_languages",
    "get_bilingual_text",
    "has_content_in_language",
    "localize",
    "transform_competency",
    "transform_course",
    "transform_lesson",
    "transform_module",
]
