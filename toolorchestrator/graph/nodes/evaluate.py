"""Progress evaluation between tool rounds."""

from __future__ import annotations

import logging
from typing import Sequence

from toolorchestrator.graph.context import OrchestratorContext, next_timestamp
from toolorchestrator.graph.formatting import build_updated_context
from toolorchestrator.graph.prompts import build_evaluation_prompt
from toolorchestrator.graph.schema import InternalTurn, OrchestrationStep, ToolExecution
from toolorchestrator.graph.state import OrchestrationRequest, OrchestrationState, next_step_slot, record_step
from toolorchestrator.utils.error_handler import with_error_boundary
from toolorchestrator.utils.logging_utils import log_node_entry, log_node_exit

LOGGER = logging.getLogger("toolorchestrator.evaluate")

EVALUATION_TEMPERATURE = 0.1


async def evaluate_progress(
    ctx: OrchestratorContext,
    user_message: str,
    context: str,
    tool_calls: Sequence[ToolExecution],
    previous_steps: Sequence[OrchestrationStep],
    model: str,
    step_id: str,
    conversation: Sequence[InternalTurn] = (),
    *,
    not_before: float = 0.0,
) -> OrchestrationStep:
    prompt = build_evaluation_prompt(user_message, context, tool_calls, len(previous_steps), conversation)
    content = await ctx.complete("evaluate", prompt, model=model, temperature=EVALUATION_TEMPERATURE)
    return OrchestrationStep(
        id=step_id,
        type="evaluation",
        timestamp=next_timestamp(not_before),
        content=content,
        reasoning="Determined whether more info needed",
    )


def build_evaluate_node(*, ctx: OrchestratorContext, request: OrchestrationRequest):
    """Create the evaluation node.

    Anything without the CONTINUE marker counts as complete. The running
    context is rebuilt from every tool result so far.
    """

    @with_error_boundary("evaluate")
    async def evaluate_node(state: OrchestrationState) -> OrchestrationState:
        log_node_entry(LOGGER, "evaluate", state)

        tool_calls = state.get("tool_calls", [])
        step_id, not_before = next_step_slot(state)
        step = await evaluate_progress(
            ctx,
            request.user_message,
            state.get("running_context", request.user_message),
            tool_calls,
            state.get("steps", []),
            request.model,
            step_id,
            state.get("conversation", []),
            not_before=not_before,
        )
        updates = record_step(step, turn=f"Evaluation: {step.content}")
        updates.update(
            needs_more=ctx.parser.needs_more_information(step.content),
            running_context=build_updated_context(request.user_message, tool_calls),
            pending_calls=[],
        )

        log_node_exit(LOGGER, "evaluate", updates)
        return updates

    return evaluate_node
