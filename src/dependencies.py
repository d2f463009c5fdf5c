"""FastAPI dependency functions for injection into endpoint handlers.

The chat router and its registry are expensive to build, so they are
created once during the lifespan and stored on ``app.state``; the functions
here simply look them up.  The LLM client builders are also used by the
lifespan itself.
"""

from __future__ import annotations

from fastapi import Header, HTTPException, Request

from src.config import settings
from src.core.llm.client import LLMClient
from src.core.router import ChatRouter
from src.handlers.registry import HandlerRegistry
from src.utils.exceptions import LLMError
from src.utils.logging import get_logger

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Router and registry (initialised during app lifespan)
# ---------------------------------------------------------------------------

def get_chat_router(request: Request) -> ChatRouter:
    """Return the chat router stored on ``app.state``."""
    return request.app.state.chat_router


def get_handler_registry(request: Request) -> HandlerRegistry:
    return request.app.state.chat_router.registry


# ---------------------------------------------------------------------------
# Caller identity (authentication happens upstream)
# ---------------------------------------------------------------------------

def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="X-User-Id header is required.")
    return x_user_id


def get_user_name(x_user_name: str | None = Header(default=None)) -> str | None:
    return x_user_name or None


# ---------------------------------------------------------------------------
# LLM clients (optional -- None when no API key is configured)
# ---------------------------------------------------------------------------

def _resolve_api_key() -> str:
    """Pick the API key for the configured provider.

    Resolution order:
      1. Provider-specific key (``ANTHROPIC_API_KEY``, ``OPENAI_API_KEY``,
         ``DEEPSEEK_API_KEY``)
      2. Generic ``LLM_API_KEY``
      3. Any non-empty provider-specific key
    """
    provider = settings.llm_provider
    provider_keys: dict[str, str] = {
        "anthropic": settings.anthropic_api_key,
        "openai": settings.openai_api_key,
        "deepseek": settings.deepseek_api_key,
    }

    if provider in provider_keys and provider_keys[provider]:
        return provider_keys[provider]

    if settings.llm_api_key:
        return settings.llm_api_key

    for key in provider_keys.values():
        if key:
            return key

    return ""


def get_llm_client(fast: bool = False) -> LLMClient | None:
    """Build an LLM client if an API key is available.

    ``fast=True`` selects the classification model and its shorter
    timeout.  Returns ``None`` when no usable key is found and the provider
    requires one, or when the provider configuration is invalid; callers
    then use their model-free fallbacks.
    """
    api_key = _resolve_api_key()
    provider = settings.llm_provider

    # Ollama and some local providers don't require a key.
    local_providers = {"ollama"}
    if not api_key and provider not in local_providers:
        return None

    model = settings.llm_fast_model if fast else settings.llm_model
    timeout = settings.classification_timeout_seconds if fast else settings.llm_timeout_seconds
    try:
        return LLMClient(
            provider,
            api_key,
            model,
            base_url=settings.llm_base_url or None,
            timeout=timeout,
        )
    except LLMError as exc:
        logger.warning("llm_client_unavailable", provider=provider, error=str(exc))
        return None
