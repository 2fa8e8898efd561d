"""Final answer synthesis."""

from __future__ import annotations

import logging
from typing import Sequence

from toolorchestrator.graph.context import OrchestratorContext, next_timestamp
from toolorchestrator.graph.prompts import build_synthesis_prompt
from toolorchestrator.graph.schema import ChatHistoryEntry, OrchestrationStep, ToolExecution
from toolorchestrator.graph.state import OrchestrationRequest, OrchestrationState, next_step_slot, record_step
from toolorchestrator.utils.error_handler import with_error_boundary
from toolorchestrator.utils.logging_utils import log_node_entry, log_node_exit

LOGGER = logging.getLogger("toolorchestrator.synthesize")

SYNTHESIS_TEMPERATURE = 0.3


async def synthesize_final_response(
    ctx: OrchestratorContext,
    user_message: str,
    chat_history: Sequence[ChatHistoryEntry],
    tool_calls: Sequence[ToolExecution],
    model: str,
    step_id: str,
    *,
    not_before: float = 0.0,
) -> OrchestrationStep:
    """Compose the candidate answer from every tool result.

    Chat history only sets the tone. Failed tools are listed with their error
    so the answer can say what could not be retrieved.
    """
    prompt = build_synthesis_prompt(user_message, chat_history, tool_calls)
    content = await ctx.complete("synthesize", prompt, model=model, temperature=SYNTHESIS_TEMPERATURE)
    return OrchestrationStep(
        id=step_id,
        type="synthesis",
        timestamp=next_timestamp(not_before),
        content=content,
        reasoning="Final synthesis of all gathered information",
    )


def build_synthesize_node(*, ctx: OrchestratorContext, request: OrchestrationRequest):
    @with_error_boundary("synthesize")
    async def synthesize_node(state: OrchestrationState) -> OrchestrationState:
        log_node_entry(LOGGER, "synthesize", state)

        tool_calls = state.get("tool_calls", [])
        ctx.log(f"🧩 Tool loop complete after {len(tool_calls)} tool call(s), composing answer")

        step_id, not_before = next_step_slot(state)
        step = await synthesize_final_response(
            ctx,
            request.user_message,
            request.chat_history,
            tool_calls,
            request.model,
            step_id,
            not_before=not_before,
        )
        updates = record_step(step)
        updates["answer"] = step.content

        log_node_exit(LOGGER, "synthesize", updates)
        return updates

    return synthesize_node
