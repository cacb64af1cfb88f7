"""Language-model collaborator used by the turn orchestrator."""

import logging
from typing import Protocol

from anthropic import APIError, AsyncAnthropic

from app.config import get_settings
from app.errors import ProviderError

logger = logging.getLogger(__name__)
settings = get_settings()


class LanguageModel(Protocol):
    """Anything that can turn a system prompt and ordered turns into a reply."""

    async def complete(
        self,
        system_prompt: str,
        turns: list[dict],
        max_output_tokens: int,
        temperature: float,
    ) -> str: ...


def _user_first(turns: list[dict]) -> list[dict]:
    """Drop leading assistant turns; the Messages API expects the first message from the user."""
    for index, turn in enumerate(turns):
        if turn["role"] == "user":
            return turns[index:]
    return []


class AnthropicLanguageModel:
    """Claude via the Anthropic Messages API. Single call, no retry."""

    def __init__(self, api_key: str | None = None, model: str | None = None):
        """Initialize Anthropic client."""
        self.model = model or settings.llm_model
        self.client = AsyncAnthropic(
            api_key=api_key or settings.anthropic_api_key,
            timeout=settings.llm_timeout_seconds,
            max_retries=0,
        )

    async def complete(
        self,
        system_prompt: str,
        turns: list[dict],
        max_output_tokens: int,
        temperature: float,
    ) -> str:
        """
        Get a full (non-streaming) reply.

        Args:
            system_prompt: Persona and personalisation instructions
            turns: Ordered {"role", "content"} dicts from the context window
            max_output_tokens: Hard cap on reply length
            temperature: Sampling temperature

        Returns:
            Reply text

        Raises:
            ProviderError: Timeout, quota, invalid input or an empty reply
        """
        try:
            message = await self.client.messages.create(
                model=self.model,
                max_tokens=max_output_tokens,
                temperature=temperature,
                system=system_prompt,
                messages=_user_first(turns),
            )
        except APIError as e:
            logger.warning("Anthropic request failed: %s", e)
            raise ProviderError("Language model request failed.", details=str(e)) from e

        reply = "".join(block.text for block in message.content if block.type == "text").strip()
        if not reply:
            raise ProviderError(
                "Language model returned an empty reply.",
                details=f"stop_reason={message.stop_reason}",
            )
        return reply


_default_model: AnthropicLanguageModel | None = None


def get_language_model() -> LanguageModel:
    """Shared Anthropic-backed model, created on first use."""
    global _default_model
    if _default_model is None:
        _default_model = AnthropicLanguageModel()
    return _default_model
