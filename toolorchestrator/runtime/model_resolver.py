"""Provider routing for model identifiers.

A model id that carries a namespace separator (``/`` or ``:``, e.g.
``anthropic/claude-3.5-sonnet``) is served by OpenRouter and needs its own
credential. Every other id goes to the primary OpenAI provider. The check for a
missing OpenRouter key happens here, before any client is created, so a
misconfigured deployment fails without touching the network.
"""

from __future__ import annotations

from typing import Callable

from toolorchestrator.config.settings import ProviderSettings
from toolorchestrator.models.provider import ProviderConfig
from toolorchestrator.utils.error_handler import ConfigurationError

ModelResolver = Callable[[str], ProviderConfig]


def is_namespaced_model(model: str) -> bool:
    return "/" in model or ":" in model


def resolve_provider_config(model: str, settings: ProviderSettings) -> ProviderConfig:
    """Pick provider credentials for ``model``.

    Raises:
        ConfigurationError: the model routes to OpenRouter and no key is configured
    """
    if is_namespaced_model(model):
        if not settings.openrouter_api_key:
            raise ConfigurationError(
                "Missing OPENROUTER_API_KEY",
                user_message=f"Model {model} requires an OpenRouter API key",
            )
        return ProviderConfig(
            provider="openrouter",
            api_key=settings.openrouter_api_key,
            base_url=settings.openrouter_base_url,
        )
    return ProviderConfig(provider="openai", api_key=settings.openai_api_key, base_url=settings.openai_base_url)


def build_model_resolver(settings: ProviderSettings) -> ModelResolver:
    """Construct a resolver bound to one set of provider settings.

    Example:
        >>> resolver = build_model_resolver(get_settings().providers)
        >>> resolver("gpt-4.1-mini").provider
        'openai'
    """

    def resolver(model_id: str) -> ProviderConfig:
        return resolve_provider_config(model_id, settings)

    return resolver
