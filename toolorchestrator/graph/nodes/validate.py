"""Format validation and refinement of the synthesized answer."""

from __future__ import annotations

import logging
from typing import Sequence

from toolorchestrator.graph.context import OrchestratorContext, next_timestamp
from toolorchestrator.graph.prompts import build_refinement_prompt, build_validation_prompt
from toolorchestrator.graph.schema import ChatHistoryEntry, OrchestrationStep, ToolExecution
from toolorchestrator.graph.state import OrchestrationRequest, OrchestrationState, next_step_slot, record_step
from toolorchestrator.utils.error_handler import with_error_boundary
from toolorchestrator.utils.logging_utils import log_node_entry, log_node_exit

LOGGER = logging.getLogger("toolorchestrator.validate")

REFINEMENT_TEMPERATURE = 0.3


async def validate_response_format(
    ctx: OrchestratorContext,
    user_message: str,
    draft: str,
    model: str,
    step_id: str,
    *,
    not_before: float = 0.0,
) -> OrchestrationStep:
    """Ask whether ``draft`` matches the user's intent and format.

    Runs without an explicit temperature, on whichever model the caller chose
    for validation.
    """
    prompt = build_validation_prompt(user_message, draft)
    content = await ctx.complete("validate", prompt, model=model)
    return OrchestrationStep(
        id=step_id,
        type="evaluation",
        timestamp=next_timestamp(not_before),
        content=content,
        reasoning="Checked final format compliance",
    )


async def refine_synthesis(
    ctx: OrchestratorContext,
    user_message: str,
    chat_history: Sequence[ChatHistoryEntry],
    tool_calls: Sequence[ToolExecution],
    draft: str,
    feedback: str,
    model: str,
    step_id: str,
    *,
    not_before: float = 0.0,
) -> OrchestrationStep:
    """Rewrite ``draft`` according to ``feedback``. Never calls tools."""
    prompt = build_refinement_prompt(user_message, chat_history, tool_calls, draft, feedback)
    content = await ctx.complete("refine", prompt, model=model, temperature=REFINEMENT_TEMPERATURE)
    return OrchestrationStep(
        id=step_id,
        type="synthesis",
        timestamp=next_timestamp(not_before),
        content=content,
        reasoning="Refined synthesis based on feedback",
    )


def build_validate_node(*, ctx: OrchestratorContext, request: OrchestrationRequest):
    @with_error_boundary("validate")
    async def validate_node(state: OrchestrationState) -> OrchestrationState:
        log_node_entry(LOGGER, "validate", state)

        step_id, not_before = next_step_slot(state)
        step = await validate_response_format(
            ctx,
            request.user_message,
            state.get("answer", ""),
            request.validation_model,
            step_id,
            not_before=not_before,
        )
        acceptable = ctx.parser.is_format_acceptable(step.content)
        updates = record_step(step)
        updates.update(
            format_acceptable=acceptable,
            feedback="" if acceptable else ctx.parser.refinement_feedback(step.content),
            validation_rounds=state.get("validation_rounds", 0) + 1,
        )

        log_node_exit(LOGGER, "validate", updates)
        return updates

    return validate_node


def build_refine_node(*, ctx: OrchestratorContext, request: OrchestrationRequest):
    @with_error_boundary("refine")
    async def refine_node(state: OrchestrationState) -> OrchestrationState:
        log_node_entry(LOGGER, "refine", state)

        step_id, not_before = next_step_slot(state)
        step = await refine_synthesis(
            ctx,
            request.user_message,
            request.chat_history,
            state.get("tool_calls", []),
            state.get("answer", ""),
            state.get("feedback", ""),
            request.model,
            step_id,
            not_before=not_before,
        )
        updates = record_step(step)
        updates["answer"] = step.content

        log_node_exit(LOGGER, "refine", updates)
        return updates

    return refine_node
