"""Tool planning with one forced retry and a deterministic fallback."""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from toolorchestrator.graph.context import OrchestratorContext, next_timestamp
from toolorchestrator.graph.formatting import (
    CALENDAR_LIST_TOOL,
    KNOWLEDGE_SEARCH_TOOL,
    VECTOR_STORE_IDS_PARAM,
    has_tool,
    images_from_files,
    is_calendar_query,
)
from toolorchestrator.graph.prompts import RETRY_DIRECTIVE, build_planning_prompt
from toolorchestrator.graph.schema import (
    AttachedFile,
    InternalTurn,
    OrchestrationStep,
    PlannedToolCall,
    ToolExecution,
)
from toolorchestrator.graph.state import OrchestrationRequest, OrchestrationState, next_step_slot, record_step
from toolorchestrator.tools.registry import ToolRegistry
from toolorchestrator.utils.error_handler import with_error_boundary
from toolorchestrator.utils.logging_utils import log_node_entry, log_node_exit

LOGGER = logging.getLogger("toolorchestrator.planner")

PLANNING_TEMPERATURE = 0.1


async def decide_tool_usage(
    ctx: OrchestratorContext,
    context: str,
    registry: ToolRegistry,
    previous_calls: Sequence[ToolExecution],
    previous_steps: Sequence[OrchestrationStep],
    model: str,
    step_id: str,
    conversation: Sequence[InternalTurn] = (),
    attached_files: Sequence[AttachedFile] = (),
    *,
    not_before: float = 0.0,
) -> OrchestrationStep:
    """Ask the model which tools to call next.

    The reply is either a ``CALL_TOOLS`` block or ``SUFFICIENT_INFO``; parsing is
    left to the caller.
    """
    prompt = build_planning_prompt(
        context,
        registry,
        ctx.vector_store_ids,
        previous_calls,
        previous_steps,
        conversation,
        attached_files,
    )
    content = await ctx.complete(
        "plan",
        prompt,
        model=model,
        temperature=PLANNING_TEMPERATURE,
        images=images_from_files(attached_files),
    )
    return OrchestrationStep(
        id=step_id,
        type="evaluation",
        timestamp=next_timestamp(not_before),
        content=content,
        reasoning="Planned next tool usage",
    )


def fallback_tool_calls(
    user_message: str,
    registry: ToolRegistry,
    vector_store_ids: Sequence[str] = (),
) -> List[PlannedToolCall]:
    """Pick a tool without asking the model.

    Calendar keywords win, then the knowledge search tool when registered.
    Otherwise the calendar listing tool is chosen even if it is not registered;
    the registry reports it as unknown.
    """
    if is_calendar_query(user_message):
        return [PlannedToolCall(name=CALENDAR_LIST_TOOL)]
    if has_tool(registry, KNOWLEDGE_SEARCH_TOOL):
        parameters: Dict[str, object] = {"query": user_message, VECTOR_STORE_IDS_PARAM: list(vector_store_ids)}
        return [PlannedToolCall(name=KNOWLEDGE_SEARCH_TOOL, parameters=parameters)]
    return [PlannedToolCall(name=CALENDAR_LIST_TOOL)]


def build_plan_node(*, ctx: OrchestratorContext, request: OrchestrationRequest):
    """Create the planning node.

    The first visit of a round asks the model normally. When nothing can be
    parsed the node flags a retry and is visited again with the forced-call
    directive appended. A second empty answer falls back to
    :func:`fallback_tool_calls`.
    """

    @with_error_boundary("plan")
    async def plan_node(state: OrchestrationState) -> OrchestrationState:
        log_node_entry(LOGGER, "plan", state)

        retry = state.get("plan_retry_pending", False)
        context = state.get("running_context", request.user_message)
        if retry:
            context += RETRY_DIRECTIVE

        step_id, not_before = next_step_slot(state)
        step = await decide_tool_usage(
            ctx,
            context,
            request.registry,
            state.get("tool_calls", []),
            state.get("steps", []),
            request.model,
            step_id,
            state.get("conversation", []),
            request.attached_files,
            not_before=not_before,
        )
        label = "Tool planning (retry)" if retry else "Tool planning"
        updates = record_step(step, turn=f"{label}: {step.content}")

        calls = ctx.parser.parse_tool_calls(step.content)
        if not calls and not retry:
            ctx.log("🔁 No CALL_TOOLS – issuing forced retry")
            updates.update(pending_calls=[], plan_retry_pending=True)
        else:
            if not calls:
                calls = fallback_tool_calls(request.user_message, request.registry, ctx.vector_store_ids)
                ctx.log(f"⚠️ Falling back to default tool(s): {', '.join(call.name for call in calls)}")
            updates.update(pending_calls=calls, plan_retry_pending=False)

        log_node_exit(LOGGER, "plan", updates)
        return updates

    return plan_node
