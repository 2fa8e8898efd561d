"""Read-only services shared by the stage functions of one orchestration."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence, Tuple

from toolorchestrator.models.provider import CompletionProvider, ImageInput, ProviderConfig, supports_temperature
from toolorchestrator.utils.error_handler import OrchestrationCancelled
from toolorchestrator.utils.logging_utils import log_model_selection, log_prompt

from .parsing import OutputParser

LOGGER = logging.getLogger("toolorchestrator.context")

ProgressCallback = Callable[[str], None]

EMPTY_RESPONSE = "No response"


def now_ms() -> float:
    return time.time() * 1000


def next_timestamp(not_before: float = 0.0) -> float:
    """Current epoch milliseconds, never earlier than ``not_before``."""
    return max(now_ms(), not_before)


class CancellationSignal:
    """Caller-controlled stop flag with an optional deadline.

    Checked before every provider call and tool execution.
    """

    def __init__(self, deadline_seconds: Optional[float] = None, *, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._deadline = clock() + deadline_seconds if deadline_seconds else None
        self._reason: Optional[str] = None

    def cancel(self, reason: str = "Orchestration cancelled by caller") -> None:
        self._reason = reason

    @property
    def cancelled(self) -> bool:
        if self._reason is not None:
            return True
        return self._deadline is not None and self._clock() >= self._deadline

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OrchestrationCancelled(self._reason or "Orchestration deadline exceeded")


@dataclass(frozen=True)
class OrchestratorContext:
    """Services a stage may use. Holds no mutable orchestration state."""

    provider: CompletionProvider
    resolve_model: Callable[[str], ProviderConfig]
    parser: OutputParser
    vector_store_ids: Tuple[str, ...] = ()
    progress_callback: Optional[ProgressCallback] = None
    cancel_signal: CancellationSignal = field(default_factory=CancellationSignal)
    validation_model: Optional[str] = None
    prompt_log_length: int = 500

    def log(self, message: str) -> None:
        """Record a milestone and relay it to the progress callback.

        A failing callback is logged and otherwise ignored.
        """
        LOGGER.info(message)
        if self.progress_callback is None:
            return
        try:
            self.progress_callback(message)
        except Exception as e:
            LOGGER.warning(f"Progress callback failed: {type(e).__name__}: {e}")

    def check_cancelled(self) -> None:
        self.cancel_signal.raise_if_cancelled()

    async def complete(
        self,
        stage: str,
        prompt: str,
        *,
        model: str,
        temperature: Optional[float] = None,
        images: Optional[Sequence[ImageInput]] = None,
    ) -> str:
        """Run one completion call for ``stage`` and return its text."""
        self.check_cancelled()
        config = self.resolve_model(model)
        log_model_selection(LOGGER, stage, model, config.provider)
        log_prompt(LOGGER, stage, prompt, self.prompt_log_length)

        response = await self.provider.generate_text(
            prompt,
            config,
            model=model,
            temperature=temperature if supports_temperature(model) else None,
            images=list(images) if images else None,
        )
        return response.text or EMPTY_RESPONSE
