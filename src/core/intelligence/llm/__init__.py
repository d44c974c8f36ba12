# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""LLM client module using LiteLLM.

Example:
    >>> from src.core.intelligence.llm import LLMClient
    >>> client = LLMClient()
    >>> response = await client.complete_with_messages(messages)
"""

from src.core.intelligence.llm.client import (
    LLMClient,
    LLMError,
    LLMResponse,
    mock_reply,
)

__all__ = [
    "LLMClient",
    "LLMError",
    "LLMResponse",
    "mock_reply",
]
