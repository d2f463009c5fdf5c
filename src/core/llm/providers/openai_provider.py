"""OpenAI provider for the LLM client abstraction.

Wraps the ``openai`` SDK to expose the standard ``complete`` and
``complete_json`` interface expected by :class:`~src.core.llm.client.LLMClient`.
:class:`~src.core.llm.providers.openai_compatible_provider.OpenAICompatibleProvider`
reuses this class with a custom ``base_url``.
"""

from __future__ import annotations

import json

from src.utils.exceptions import LLMError
from src.utils.json_extractor import extract_json_object
from src.utils.logging import get_logger

logger = get_logger("llm.openai")


class OpenAIProvider:
    """Provider implementation for OpenAI chat models.

    Parameters
    ----------
    api_key:
        OpenAI API key.
    model:
        Model identifier, e.g. ``"gpt-4o-mini"``.
    base_url:
        Optional API root for OpenAI-compatible services.
    provider_name:
        Name used in log events and :class:`LLMError` messages.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        provider_name: str = "openai",
    ):
        try:
            import openai
        except ImportError as exc:
            raise LLMError(
                provider_name,
                "The 'openai' package is not installed. "
                "Install it with: pip install openai",
            ) from exc

        if not api_key:
            raise LLMError(provider_name, "API key is required but was empty.")

        kwargs = {"api_key": api_key}
        if base_url:
            kwargs["base_url"] = base_url
        self.client = openai.AsyncOpenAI(**kwargs)
        self.model = model
        self.provider_name = provider_name

    def _with_system(self, system: str, messages: list[dict]) -> list[dict]:
        return [{"role": "system", "content": system}, *messages]

    async def complete(self, system: str, messages: list[dict], max_tokens: int) -> str:
        """Call the chat completions API and return the text response."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                max_tokens=max_tokens,
                messages=self._with_system(system, messages),
            )
            choice = response.choices[0] if response.choices else None
            if choice and choice.message and choice.message.content:
                return choice.message.content
            return ""
        except Exception as exc:
            logger.error(f"{self.provider_name}_complete_error", error=str(exc))
            raise LLMError(self.provider_name, str(exc)) from exc

    async def complete_json(self, system: str, messages: list[dict], max_tokens: int) -> dict:
        """Call the API in JSON mode and parse the response as an object."""
        json_system = (
            system + "\n\nIMPORTANT: Respond ONLY with valid JSON. "
            "Do not include markdown code fences or any other text."
        )
        raw = ""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
                messages=self._with_system(json_system, messages),
            )
            choice = response.choices[0] if response.choices else None
            if choice and choice.message and choice.message.content:
                raw = choice.message.content
            return extract_json_object(raw)
        except json.JSONDecodeError as exc:
            logger.error(f"{self.provider_name}_json_parse_error", raw=raw[:500], error=str(exc))
            raise LLMError(
                self.provider_name,
                f"Failed to parse LLM response as JSON: {exc}",
            ) from exc
        except Exception as exc:
            logger.error(f"{self.provider_name}_complete_json_error", error=str(exc))
            raise LLMError(self.provider_name, str(exc)) from exc
