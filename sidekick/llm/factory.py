"""Build an ``LLMRouter`` from configuration."""

from __future__ import annotations

import logging

from sidekick.config import LLMProviderConfig
from sidekick.llm.providers.anthropic import AnthropicProvider
from sidekick.llm.providers.base import Provider
from sidekick.llm.providers.openai_compat import OpenAICompatProvider
from sidekick.llm.router import LLMRouter

logger = logging.getLogger(__name__)

PROVIDERS: dict[str, type] = {
    "openai": OpenAICompatProvider,
    "anthropic": AnthropicProvider,
}


def build_provider(cfg: LLMProviderConfig, api_key: str) -> Provider:
    provider_cls = PROVIDERS.get(cfg.name)
    if provider_cls is None:
        logger.warning(
            "Unknown LLM provider %r (expected one of %s); using openai",
            cfg.name,
            sorted(PROVIDERS),
        )
        provider_cls = OpenAICompatProvider
    return provider_cls(
        url=cfg.effective_api_base,
        model=cfg.effective_model,
        api_key=api_key,
        timeout=float(cfg.timeout_seconds),
        max_retries=cfg.max_retries,
    )


def build_router(cfg: LLMProviderConfig) -> LLMRouter:
    """
    Register the configured provider, if its API key is present.

    A router with no provider is how "not configured" reaches the
    orchestrator; it is not an error here.
    """
    router = LLMRouter()
    api_key = cfg.api_key()
    if not api_key:
        logger.error(
            "LLM client not configured: %s not found in environment variables",
            cfg.effective_api_key_env,
        )
        return router

    provider = build_provider(cfg, api_key)
    router.register_provider(provider.name, provider)
    logger.info(
        "LLM client initialized with %s provider using model: %s",
        provider.name,
        cfg.effective_model,
    )
    return router
