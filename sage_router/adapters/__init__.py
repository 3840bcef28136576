"""
Sage Router Adapters Module

Generation backends that turn a (system prompt, user prompt) pair into
text against each provider's native API.
"""

from typing import Dict

from .base import AdapterConfig, GenerationBackend, call_with_timeout
from .openai_adapter import OpenAIBackend
from .anthropic_adapter import AnthropicBackend
from .gemini_adapter import GeminiBackend
from .stub_adapter import StubBackend
from ..config import RouterSettings
from ..core.models import ProviderIdentity

__all__ = [
    "AdapterConfig",
    "GenerationBackend",
    "call_with_timeout",
    "OpenAIBackend",
    "AnthropicBackend",
    "GeminiBackend",
    "StubBackend",
    "get_adapter",
    "build_backends",
]


def get_adapter(provider: str, config: AdapterConfig) -> GenerationBackend:
    """
    Factory function to get the backend for a provider.

    Args:
        provider: Provider name ("openai", "anthropic", "gemini")
        config: Adapter configuration with API key

    Raises:
        ValueError: If provider is not supported
    """
    adapters = {
        "openai": OpenAIBackend,
        "anthropic": AnthropicBackend,
        "gemini": GeminiBackend,
    }

    adapter_class = adapters.get(provider.lower())
    if not adapter_class:
        raise ValueError(f"Unsupported provider: {provider}")

    return adapter_class(config)


def build_backends(settings: RouterSettings) -> Dict[ProviderIdentity, GenerationBackend]:
    """
    Build one backend per provider that has credentials.

    Providers without a key are left out; the fallback loop counts them
    as failed attempts. Stub mode registers a StubBackend for every
    provider.
    """
    if settings.use_stub_adapters:
        return {p: StubBackend(p) for p in ProviderIdentity}

    backends: Dict[ProviderIdentity, GenerationBackend] = {}
    for provider in ProviderIdentity:
        api_key = settings.provider_keys.get(provider.value)
        if not api_key:
            continue
        backends[provider] = get_adapter(
            provider.value,
            AdapterConfig(api_key=api_key, timeout=settings.call_timeout_seconds),
        )
    return backends
