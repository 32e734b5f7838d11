from glassvoice.providers.anthropic import AnthropicProvider
from glassvoice.providers.base import HttpProvider, ProviderAdapter
from glassvoice.providers.deepgram import DeepgramProvider
from glassvoice.providers.openai_compat import OpenAICompatibleProvider
from glassvoice.providers.registry import build_providers, create_provider, register_provider

__all__ = [
    "ProviderAdapter", "HttpProvider",
    "OpenAICompatibleProvider", "AnthropicProvider", "DeepgramProvider",
    "build_providers", "create_provider", "register_provider",
]
