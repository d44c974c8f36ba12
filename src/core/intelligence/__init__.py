# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Intelligence module for AI-powered operations.

LiteLLM is the single interface to language model providers.
"""

from src.core.intelligence.llm import LLMClient, LLMError, LLMResponse

__all__ = [
    "LLMClient",
    "LLMError",
    "LLMResponse",
]
