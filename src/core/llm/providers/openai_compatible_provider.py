"""Generic OpenAI-compatible provider for the LLM client abstraction.

Supports any LLM service that exposes an OpenAI-compatible chat completions
API, including:
  - DeepSeek (``https://api.deepseek.com``)
  - Ollama (``http://localhost:11434/v1``)
  - Together AI (``https://api.together.xyz/v1``)
  - Groq (``https://api.groq.com/openai/v1``)
  - Any other service with a compatible ``/chat/completions`` endpoint
"""

from __future__ import annotations

from src.core.llm.providers.openai_provider import OpenAIProvider
from src.utils.exceptions import LLMError


class OpenAICompatibleProvider(OpenAIProvider):
    """Provider for any OpenAI-compatible API endpoint.

    Parameters
    ----------
    api_key:
        API key (pass an empty string for services that do not require
        authentication, e.g. local Ollama).
    model:
        Model identifier.
    base_url:
        Base URL for the API (e.g. ``"http://localhost:11434/v1"``).
    provider_name:
        Human-readable name used in log messages and error reports.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        provider_name: str = "openai_compatible",
    ):
        if not base_url:
            raise LLMError(provider_name, "base_url is required but was empty.")

        # Some local services (e.g. Ollama) don't need a key.
        super().__init__(
            api_key or "none",
            model,
            base_url=base_url,
            provider_name=provider_name,
        )
