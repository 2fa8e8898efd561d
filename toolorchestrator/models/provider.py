"""Completion provider contract and the LangChain-backed implementation.

The orchestrator treats the language model as an opaque asynchronous text
generator: one prompt in, one text out. ``LangChainCompletionProvider`` builds a
``ChatOpenAI`` client per call from the resolved provider configuration, which
covers both OpenAI and OpenAI-compatible gateways such as OpenRouter.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Protocol, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from toolorchestrator.utils.error_handler import ConfigurationError

ProviderName = Literal["openai", "openrouter"]

# Reasoning models reject an explicit temperature
TEMPERATURE_UNSUPPORTED_MODELS = frozenset({"o3", "o3-mini", "o4-mini", "o4-mini-high"})


def supports_temperature(model: str) -> bool:
    return model not in TEMPERATURE_UNSUPPORTED_MODELS


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """Credentials and endpoint for one completion call."""

    provider: ProviderName
    api_key: Optional[str]
    base_url: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ImageInput:
    """An image forwarded to a multimodal model as a data URL."""

    image_data: str
    mime_type: str = "image/png"


@dataclass(frozen=True, slots=True)
class CompletionResult:
    text: str


class CompletionProvider(Protocol):
    async def generate_text(
        self,
        prompt: str,
        provider_config: ProviderConfig,
        *,
        model: str,
        temperature: Optional[float] = None,
        images: Optional[Sequence[ImageInput]] = None,
        messages: Optional[Sequence[Mapping[str, str]]] = None,
    ) -> CompletionResult: ...


def _chat_kwargs(model: str, config: ProviderConfig, temperature: Optional[float]) -> Dict[str, object]:
    if not config.api_key:
        raise ConfigurationError(f"Missing API key for provider '{config.provider}' (model {model})")
    kwargs: Dict[str, object] = {"model": model, "api_key": config.api_key}
    if temperature is not None:
        kwargs["temperature"] = temperature
    if config.base_url:
        kwargs["base_url"] = config.base_url
    return kwargs


def _to_message(turn: Mapping[str, str]) -> BaseMessage:
    role = turn.get("role", "user")
    content = turn.get("content", "")
    if role == "assistant":
        return AIMessage(content=content)
    if role == "system":
        return SystemMessage(content=content)
    return HumanMessage(content=content)


def _content_text(content: Any) -> str:
    """Flatten message content (plain string or list of parts) into text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: List[str] = []
        for item in content:
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, dict) and item.get("type") == "text":
                parts.append(str(item.get("text", "")))
        return "".join(parts)
    return "" if content is None else str(content)


class LangChainCompletionProvider:
    """Generate text through a LangChain chat model."""

    def __init__(self, chat_factory: Callable[..., Any] = ChatOpenAI) -> None:
        self._chat_factory = chat_factory

    async def generate_text(
        self,
        prompt: str,
        provider_config: ProviderConfig,
        *,
        model: str,
        temperature: Optional[float] = None,
        images: Optional[Sequence[ImageInput]] = None,
        messages: Optional[Sequence[Mapping[str, str]]] = None,
    ) -> CompletionResult:
        chat = self._chat_factory(**_chat_kwargs(model, provider_config, temperature))

        history: List[BaseMessage] = [_to_message(turn) for turn in messages or []]
        if images:
            content: List[Dict[str, Any]] = [{"type": "text", "text": prompt}]
            content.extend({"type": "image_url", "image_url": {"url": image.image_data}} for image in images)
            history.append(HumanMessage(content=content))
        else:
            history.append(HumanMessage(content=prompt))

        response = await chat.ainvoke(history)
        return CompletionResult(text=_content_text(getattr(response, "content", response)))
