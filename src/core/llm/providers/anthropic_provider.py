"""Anthropic Claude provider for the LLM client abstraction.

Wraps the ``anthropic`` SDK to expose the standard ``complete`` and
``complete_json`` interface expected by :class:`~src.core.llm.client.LLMClient`.
"""

from __future__ import annotations

import json

from src.utils.exceptions import LLMError
from src.utils.json_extractor import extract_json_object
from src.utils.logging import get_logger

logger = get_logger("llm.anthropic")


class AnthropicProvider:
    """Provider implementation for Anthropic Claude models.

    Parameters
    ----------
    api_key:
        Anthropic API key.
    model:
        Model identifier, e.g. ``"claude-3-5-haiku-20241022"``.
    """

    def __init__(self, api_key: str, model: str):
        try:
            import anthropic
        except ImportError as exc:
            raise LLMError(
                "anthropic",
                "The 'anthropic' package is not installed. "
                "Install it with: pip install anthropic",
            ) from exc

        if not api_key:
            raise LLMError("anthropic", "API key is required but was empty.")

        self.client = anthropic.AsyncAnthropic(api_key=api_key)
        self.model = model

    async def complete(self, system: str, messages: list[dict], max_tokens: int) -> str:
        """Call Claude and return the assistant's text response."""
        try:
            message = await self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                system=system,
                messages=messages,
            )
            # Extract text from the first content block.
            if message.content:
                return message.content[0].text
            return ""
        except Exception as exc:
            logger.error("anthropic_complete_error", error=str(exc))
            raise LLMError("anthropic", str(exc)) from exc

    async def complete_json(self, system: str, messages: list[dict], max_tokens: int) -> dict:
        """Call Claude and parse the response as a JSON object.

        Claude has no JSON response mode, so the instruction goes into the
        system prompt and the object is extracted from whatever comes back.
        """
        json_system = (
            system + "\n\nIMPORTANT: Respond ONLY with valid JSON. "
            "Do not include markdown code fences or any other text."
        )
        raw = await self.complete(json_system, messages, max_tokens)
        try:
            return extract_json_object(raw)
        except json.JSONDecodeError as exc:
            logger.error("anthropic_json_parse_error", raw=raw[:500], error=str(exc))
            raise LLMError(
                "anthropic",
                f"Failed to parse LLM response as JSON: {exc}",
            ) from exc
