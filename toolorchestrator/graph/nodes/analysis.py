"""Initial request analysis."""

from __future__ import annotations

import logging
from typing import Sequence

from toolorchestrator.graph.context import OrchestratorContext, next_timestamp
from toolorchestrator.graph.formatting import images_from_files
from toolorchestrator.graph.prompts import build_analysis_prompt
from toolorchestrator.graph.schema import AttachedFile, ChatHistoryEntry, OrchestrationStep
from toolorchestrator.graph.state import OrchestrationRequest, OrchestrationState, next_step_slot, record_step
from toolorchestrator.tools.registry import ToolRegistry
from toolorchestrator.utils.error_handler import with_error_boundary
from toolorchestrator.utils.logging_utils import log_node_entry, log_node_exit

LOGGER = logging.getLogger("toolorchestrator.analysis")

ANALYSIS_TEMPERATURE = 0.1


async def perform_analysis(
    ctx: OrchestratorContext,
    user_message: str,
    chat_history: Sequence[ChatHistoryEntry],
    registry: ToolRegistry,
    model: str,
    step_id: str,
    attached_files: Sequence[AttachedFile] = (),
    *,
    not_before: float = 0.0,
) -> OrchestrationStep:
    """Ask the model for a decomposition and strategy for the request.

    The output is kept verbatim as the first step of the log.
    """
    prompt = build_analysis_prompt(user_message, chat_history, registry, ctx.vector_store_ids, attached_files)
    content = await ctx.complete(
        "analysis",
        prompt,
        model=model,
        temperature=ANALYSIS_TEMPERATURE,
        images=images_from_files(attached_files),
    )
    return OrchestrationStep(
        id=step_id,
        type="analysis",
        timestamp=next_timestamp(not_before),
        content=content,
        reasoning="Initial analysis and planning",
    )


def build_analysis_node(*, ctx: OrchestratorContext, request: OrchestrationRequest):
    """Create the analysis node bound to one orchestration call."""

    @with_error_boundary("analysis")
    async def analysis_node(state: OrchestrationState) -> OrchestrationState:
        log_node_entry(LOGGER, "analysis", state)

        step_id, not_before = next_step_slot(state)
        step = await perform_analysis(
            ctx,
            request.user_message,
            request.chat_history,
            request.registry,
            request.model,
            step_id,
            request.attached_files,
            not_before=not_before,
        )
        updates = record_step(step, turn=f"Analysis: {step.content}")

        log_node_exit(LOGGER, "analysis", updates)
        return updates

    return analysis_node
