"""Tests for LLM client multi-provider support."""
import asyncio

import pytest

from src.core.llm.client import LLMClient
from src.utils.exceptions import LLMError


class SlowProvider:
    async def complete(self, system, messages, max_tokens):
        await asyncio.sleep(1)
        return "late"

    async def complete_json(self, system, messages, max_tokens):
        await asyncio.sleep(1)
        return {"intent": "HELP"}


class FailingProvider:
    async def complete(self, system, messages, max_tokens):
        raise RuntimeError("connection reset")

    async def complete_json(self, system, messages, max_tokens):
        raise LLMError("fake", "Failed to parse LLM response as JSON")


class EchoProvider:
    async def complete(self, system, messages, max_tokens):
        return messages[-1]["content"]

    async def complete_json(self, system, messages, max_tokens):
        return {"intent": "HELP", "echo": messages[-1]["content"]}


def _client_with(provider, timeout: float = 30.0) -> LLMClient:
    client = LLMClient("openai_compatible", "key", "model", base_url="http://localhost:1/v1", timeout=timeout)
    client._provider_client = provider
    return client


class TestLLMClientProviderSelection:
    """Verify that LLMClient correctly instantiates different providers."""

    def test_anthropic_provider(self):
        """Anthropic provider should be selected for 'anthropic'."""
        with pytest.raises(LLMError, match="API key is required"):
            LLMClient("anthropic", "", "claude-3-5-haiku-20241022")

    def test_openai_provider(self):
        """OpenAI provider should be selected for 'openai'."""
        with pytest.raises(LLMError, match="API key is required"):
            LLMClient("openai", "", "gpt-4o-mini")

    def test_deepseek_provider(self):
        """DeepSeek goes through the OpenAI-compatible provider."""
        client = LLMClient("deepseek", "test-key", "deepseek-chat")
        assert client.provider == "deepseek"
        assert client._provider_client.provider_name == "deepseek"

    def test_ollama_provider(self):
        """Ollama provider should use OpenAI-compatible with localhost URL."""
        client = LLMClient("ollama", "", "llama3")
        assert client.provider == "ollama"
        assert client._provider_client is not None

    @pytest.mark.parametrize("provider", ["together", "groq", "moonshot", "siliconflow"])
    def test_known_compatible_providers(self, provider):
        client = LLMClient(provider, "test-key", "some-model")
        assert client.provider == provider

    def test_openai_compatible_with_base_url(self):
        client = LLMClient(
            "openai_compatible", "test-key", "my-model",
            base_url="http://my-server:8080/v1",
        )
        assert client.provider == "openai_compatible"

    def test_openai_compatible_without_base_url_raises(self):
        """openai_compatible without base_url should raise."""
        with pytest.raises(LLMError, match="base_url is required"):
            LLMClient("openai_compatible", "test-key", "my-model")

    def test_unknown_provider_raises(self):
        """Unknown provider should raise LLMError."""
        with pytest.raises(LLMError, match="Unknown provider"):
            LLMClient("nonexistent", "key", "model")


class TestOpenAICompatibleProvider:
    """Unit tests for OpenAI-compatible provider."""

    def test_init_without_base_url_raises(self):
        from src.core.llm.providers.openai_compatible_provider import (
            OpenAICompatibleProvider,
        )

        with pytest.raises(LLMError, match="base_url is required"):
            OpenAICompatibleProvider("key", "model", "")

    def test_init_without_key_uses_none(self):
        from src.core.llm.providers.openai_compatible_provider import (
            OpenAICompatibleProvider,
        )

        # Should not raise — empty key becomes "none" for local services.
        provider = OpenAICompatibleProvider(
            "", "llama3", "http://localhost:11434/v1", "ollama"
        )
        assert provider.model == "llama3"
        assert provider.provider_name == "ollama"


class TestLLMClientCalls:
    @pytest.mark.asyncio
    async def test_complete_returns_text(self):
        client = _client_with(EchoProvider())
        assert await client.complete("sys", [{"role": "user", "content": "hi"}]) == "hi"

    @pytest.mark.asyncio
    async def test_complete_structured_returns_dict(self):
        client = _client_with(EchoProvider())
        result = await client.complete_structured("sys", [{"role": "user", "content": "hi"}])
        assert result == {"intent": "HELP", "echo": "hi"}

    @pytest.mark.asyncio
    async def test_complete_timeout_raises(self):
        client = _client_with(SlowProvider(), timeout=0.01)
        with pytest.raises(LLMError, match="timed out"):
            await client.complete("sys", [{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_complete_wraps_provider_errors(self):
        client = _client_with(FailingProvider())
        with pytest.raises(LLMError, match="connection reset"):
            await client.complete("sys", [{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_structured_timeout_returns_none(self):
        client = _client_with(SlowProvider(), timeout=0.01)
        assert await client.complete_structured("sys", [{"role": "user", "content": "hi"}]) is None

    @pytest.mark.asyncio
    async def test_structured_failure_returns_none(self):
        client = _client_with(FailingProvider())
        assert await client.complete_structured("sys", [{"role": "user", "content": "hi"}]) is None
