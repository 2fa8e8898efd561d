"""Completion provider abstractions."""

from .provider import (
    CompletionProvider,
    CompletionResult,
    ImageInput,
    LangChainCompletionProvider,
    ProviderConfig,
    supports_temperature,
)

__all__ = [
    "CompletionProvider",
    "CompletionResult",
    "ImageInput",
    "LangChainCompletionProvider",
    "ProviderConfig",
    "supports_temperature",
]
