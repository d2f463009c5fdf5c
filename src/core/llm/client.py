"""High-level LLM client abstraction.

Provides a unified interface for interacting with different LLM providers
through a single ``LLMClient`` class.  Supported providers:

  - ``anthropic`` — Anthropic Claude
  - ``openai`` — OpenAI GPT
  - ``deepseek``, ``ollama``, ``together``, ``groq`` … — OpenAI-compatible
    services at their well-known base URLs
  - ``openai_compatible`` — Any OpenAI-compatible API with a custom base_url

Every call is bounded by ``timeout`` seconds.  ``complete`` raises
:class:`LLMError` on failure; ``complete_structured`` never raises and
returns ``None`` instead, which callers treat as "model unavailable".
"""

from __future__ import annotations

import asyncio

from src.utils.exceptions import LLMError
from src.utils.logging import get_logger

# Well-known OpenAI-compatible providers and their default base URLs.
_KNOWN_COMPATIBLE_PROVIDERS: dict[str, str] = {
    "deepseek": "https://api.deepseek.com",
    "ollama": "http://localhost:11434/v1",
    "together": "https://api.together.xyz/v1",
    "groq": "https://api.groq.com/openai/v1",
    "moonshot": "https://api.moonshot.cn/v1",
    "siliconflow": "https://api.siliconflow.cn/v1",
}

DEFAULT_MAX_TOKENS = 1024


class LLMClient:
    """Unified LLM client that delegates to a provider-specific backend.

    Parameters
    ----------
    provider:
        Provider name — ``"anthropic"``, ``"openai"``, ``"openai_compatible"``,
        or any key in the well-known providers registry.
    api_key:
        API key for the chosen provider.
    model:
        Model identifier.
    base_url:
        Optional base URL.  Required for ``openai_compatible``; overrides the
        default for well-known compatible providers.
    timeout:
        Upper bound, in seconds, for a single model call.
    """

    def __init__(
        self,
        provider: str,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout: float = 30.0,
    ):
        self.provider = provider
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self.logger = get_logger("llm")
        self._provider_client = self._init_provider()

    def _init_provider(self):
        """Instantiate the appropriate provider backend."""
        if self.provider == "anthropic":
            from src.core.llm.providers.anthropic_provider import AnthropicProvider

            return AnthropicProvider(self.api_key, self.model)

        if self.provider == "openai":
            from src.core.llm.providers.openai_provider import OpenAIProvider

            return OpenAIProvider(self.api_key, self.model, base_url=self.base_url)

        if self.provider in _KNOWN_COMPATIBLE_PROVIDERS or self.provider == "openai_compatible":
            from src.core.llm.providers.openai_compatible_provider import (
                OpenAICompatibleProvider,
            )

            base_url = self.base_url or _KNOWN_COMPATIBLE_PROVIDERS.get(self.provider, "")
            if not base_url:
                raise LLMError(
                    self.provider,
                    "base_url is required for openai_compatible provider. "
                    "Set LLM_BASE_URL in your .env file.",
                )
            return OpenAICompatibleProvider(
                api_key=self.api_key,
                model=self.model,
                base_url=base_url,
                provider_name=self.provider,
            )

        raise LLMError(
            self.provider,
            f"Unknown provider: {self.provider}. "
            f"Supported: anthropic, openai, "
            f"{', '.join(_KNOWN_COMPATIBLE_PROVIDERS.keys())}, openai_compatible",
        )

    async def complete(
        self,
        system: str,
        messages: list[dict],
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        """Send *system* plus a message list and return the text response.

        Raises :class:`LLMError` on provider failures and on timeout.
        """
        self.logger.info(
            "llm_complete",
            provider=self.provider,
            model=self.model,
            system_len=len(system),
            message_count=len(messages),
        )
        try:
            result = await asyncio.wait_for(
                self._provider_client.complete(system, messages, max_tokens),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            self.logger.error("llm_complete_timeout", timeout=self.timeout)
            raise LLMError(self.provider, f"timed out after {self.timeout}s") from exc
        except LLMError:
            raise
        except Exception as exc:
            self.logger.error("llm_complete_error", error=str(exc))
            raise LLMError(self.provider, str(exc)) from exc

        self.logger.info("llm_complete_success", response_len=len(result))
        return result

    async def complete_structured(
        self,
        system: str,
        messages: list[dict],
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> dict | None:
        """Request a JSON object from the model.

        Returns ``None`` on timeout, provider failure or unparsable output.
        """
        self.logger.info(
            "llm_complete_structured",
            provider=self.provider,
            model=self.model,
        )
        try:
            result = await asyncio.wait_for(
                self._provider_client.complete_json(system, messages, max_tokens),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            self.logger.warning("llm_structured_timeout", timeout=self.timeout)
            return None
        except Exception as exc:
            self.logger.warning("llm_structured_unavailable", error=str(exc))
            return None

        self.logger.info("llm_complete_structured_success")
        return result
