"""
Provider registry: builds the configured AI backends in priority order.

Each provider name maps to a factory taking the provider config and an
optional shared HTTP client. The enabled list in configuration decides
which factories run and in which order; the first provider listed wins
ensemble ties and is tried first in fallback chains.
"""

import logging
from typing import Callable, Optional

import httpx

from glassvoice.config import ProviderConfig
from glassvoice.providers.anthropic import AnthropicProvider
from glassvoice.providers.base import HttpProvider, ProviderAdapter
from glassvoice.providers.deepgram import DeepgramProvider
from glassvoice.providers.openai_compat import OpenAICompatibleProvider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[ProviderConfig, Optional[httpx.AsyncClient]], HttpProvider]

_PROVIDER_REGISTRY: dict[str, ProviderFactory] = {}


def register_provider(name: str, factory: ProviderFactory) -> None:
    """Register a provider factory by name."""
    _PROVIDER_REGISTRY[name] = factory
    logger.debug("Provider registered: %s", name)


def get_registered_providers() -> list[str]:
    return list(_PROVIDER_REGISTRY.keys())


def create_provider(
    name: str, config: ProviderConfig, client: Optional[httpx.AsyncClient] = None
) -> HttpProvider:
    """Create one provider adapter by registered name.

    Raises:
        KeyError: If the provider name is not registered.
    """
    if name not in _PROVIDER_REGISTRY:
        registered = list(_PROVIDER_REGISTRY.keys())
        raise KeyError(f"Provider '{name}' not registered. Available: {registered}")
    return _PROVIDER_REGISTRY[name](config, client)


def build_providers(
    config: ProviderConfig, client: Optional[httpx.AsyncClient] = None
) -> list[ProviderAdapter]:
    """Instantiate every enabled provider that has credentials, in priority order."""
    providers: list[ProviderAdapter] = []
    for name in config.enabled:
        provider = create_provider(name, config, client)
        if not provider.configured:
            logger.info("Provider '%s' enabled but has no API key; skipping", name)
            continue
        providers.append(provider)
    logger.info(
        "Active AI providers: %s",
        ", ".join(p.provider_id for p in providers) or "none (pattern matching only)",
    )
    return providers


def _groq(config: ProviderConfig, client: Optional[httpx.AsyncClient]) -> HttpProvider:
    return OpenAICompatibleProvider(
        "groq",
        config.groq_api_key,
        config.groq_base_url,
        config.groq_model,
        transcription_model=config.whisper_model,
        intent_temperature=config.intent_temperature,
        reply_temperature=config.reply_temperature,
        reply_max_tokens=config.reply_max_tokens,
        timeout=config.request_timeout_sec,
        client=client,
    )


def _openai(config: ProviderConfig, client: Optional[httpx.AsyncClient]) -> HttpProvider:
    return OpenAICompatibleProvider(
        "openai",
        config.openai_api_key,
        config.openai_base_url,
        config.openai_model,
        transcription_model="whisper-1",
        intent_temperature=config.intent_temperature,
        reply_temperature=config.reply_temperature,
        reply_max_tokens=config.reply_max_tokens,
        timeout=config.request_timeout_sec,
        client=client,
    )


def _anthropic(config: ProviderConfig, client: Optional[httpx.AsyncClient]) -> HttpProvider:
    return AnthropicProvider(
        config.anthropic_api_key,
        config.anthropic_base_url,
        config.anthropic_model,
        intent_temperature=config.intent_temperature,
        reply_temperature=config.reply_temperature,
        reply_max_tokens=config.reply_max_tokens,
        timeout=config.request_timeout_sec,
        client=client,
    )


def _deepgram(config: ProviderConfig, client: Optional[httpx.AsyncClient]) -> HttpProvider:
    return DeepgramProvider(
        config.deepgram_api_key,
        config.deepgram_base_url,
        config.deepgram_model,
        timeout=config.request_timeout_sec,
        client=client,
    )


def _auto_register() -> None:
    """Register the built-in backends. Called once at import time."""
    register_provider("groq", _groq)
    register_provider("openai", _openai)
    register_provider("anthropic", _anthropic)
    register_provider("deepgram", _deepgram)


_auto_register()
