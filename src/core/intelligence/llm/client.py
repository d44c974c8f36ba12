# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""LLM client using LiteLLM for multi-provider support.

The tutor talks to whichever provider the configured model names
(``gpt-4o-mini``, ``anthropic/claude-3-5-haiku-latest`` ...). API keys
are passed directly to LiteLLM's acompletion() rather than read from the
environment by LiteLLM itself.

When no provider key is configured the client does not call out at all
and answers with a deterministic placeholder, so development and tests
run without credentials.

Example:
    >>> from src.core.intelligence.llm import LLMClient
    >>> client = LLMClient()
    >>> response = await client.complete_with_messages(
    ...     [{"role": "user", "content": "What is a fraction?"}]
    ... )
    >>> print(response.content)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import litellm
from litellm import acompletion

from src.core.config.settings import LLMSettings, get_settings

logger = logging.getLogger(__name__)

MOCK_MODEL = "mock"


@dataclass
class LLMResponse:
    """Response from an LLM completion.

    Attributes:
        content: The generated text content.
        model: The model that generated the response.
        tokens_input: Number of input tokens used.
        tokens_output: Number of output tokens generated.
        finish_reason: Why generation stopped (stop, length, etc.).
        raw_response: Original response object from LiteLLM.
    """

    content: str
    model: str
    tokens_input: int = 0
    tokens_output: int = 0
    finish_reason: str = "stop"
    raw_response: Optional[object] = field(default=None, repr=False)

    @property
    def total_tokens(self) -> int:
        """Get total tokens used (input + output)."""
        return self.tokens_input + self.tokens_output

    @property
    def is_mock(self) -> bool:
        return self.model == MOCK_MODEL


class LLMError(Exception):
    """Exception raised when LLM operation fails.

    Attributes:
        message: Error description.
        model: Model that caused the error.
        original_error: Original exception if any.
    """

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.model = model
        self.original_error = original_error
        super().__init__(self.message)


def mock_reply(question: str) -> str:
    """Placeholder answer used when no provider key is configured."""
    return (
        f'I understand you\'re asking about: "{question}". Based on the lesson '
        "content, I can help you with that. However, this is a mock response "
        "since no LLM provider is configured. Set OPENAI_API_KEY or "
        "ANTHROPIC_API_KEY to use the actual AI tutor."
    )


class LLMClient:
    """Client for chat completions via LiteLLM.

    Attributes:
        model: Default model to use for completions.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        llm_settings: Optional[LLMSettings] = None,
    ):
        """Initialize the LLM client.

        Args:
            model: Default model in LiteLLM format. Falls back to settings.
            timeout: Request timeout in seconds. Falls back to settings.
            llm_settings: LLM configuration. Uses get_settings() if None.
        """
        self._settings = llm_settings or get_settings().llm
        self._model = model or self._settings.model
        self._timeout = timeout or self._settings.request_timeout

        litellm.drop_params = True

        logger.debug(
            "LLMClient initialized with model=%s, timeout=%.1fs, configured=%s",
            self._model,
            self._timeout,
            self.configured,
        )

    @property
    def model(self) -> str:
        return self._model

    @property
    def configured(self) -> bool:
        """Whether a provider key is available."""
        return self._settings.has_provider_key

    def _api_key(self, model: str) -> Optional[str]:
        if model.startswith("anthropic/") or model.startswith("claude"):
            secret = self._settings.anthropic_api_key
        else:
            secret = self._settings.openai_api_key
        return secret.get_secret_value() if secret else None

    async def complete_with_messages(
        self,
        messages: list[dict[str, Any]],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """Generate a completion from a list of messages.

        The messages should be in OpenAI format with 'role' and 'content'
        keys. The first message can be a system message.

        Args:
            messages: Conversation messages in OpenAI format.
            model: Override default model for this request.
            temperature: Sampling temperature. Falls back to settings.
            max_tokens: Maximum tokens to generate. Falls back to settings.

        Returns:
            LLMResponse with generated content and metadata.

        Raises:
            LLMError: If the provider call fails.
            ValueError: If messages list is empty.
        """
        if not messages:
            raise ValueError("Messages list cannot be empty")

        if not self.configured:
            logger.warning("No LLM provider key configured, using mock response")
            return LLMResponse(content=mock_reply(messages[-1]["content"]), model=MOCK_MODEL)

        use_model = model or self._model
        try:
            response = await acompletion(
                model=use_model,
                messages=messages,
                temperature=self._settings.temperature if temperature is None else temperature,
                max_tokens=max_tokens or self._settings.max_tokens,
                timeout=self._timeout,
                api_key=self._api_key(use_model),
            )

            content = response.choices[0].message.content or ""
            finish_reason = response.choices[0].finish_reason or "stop"
            tokens_input = getattr(response.usage, "prompt_tokens", 0) or 0
            tokens_output = getattr(response.usage, "completion_tokens", 0) or 0

            return LLMResponse(
                content=content,
                model=use_model,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
                finish_reason=finish_reason,
                raw_response=response,
            )

        except Exception as e:
            logger.error(
                "LLM completion with messages failed: model=%s, error=%s",
                use_model,
                str(e),
            )
            raise LLMError(
                message=f"Completion failed: {str(e)}",
                model=use_model,
                original_error=e,
            ) from e

    def __repr__(self) -> str:
        return f"LLMClient(model={self._model!r}, configured={self.configured})"
