"""Sequential execution of planned tool calls."""

from __future__ import annotations

import logging
from typing import Tuple

from toolorchestrator.graph.context import OrchestratorContext, next_timestamp, now_ms
from toolorchestrator.graph.formatting import KNOWLEDGE_SEARCH_TOOL, VECTOR_STORE_IDS_PARAM
from toolorchestrator.graph.schema import OrchestrationStep, PlannedToolCall, ToolExecution
from toolorchestrator.graph.state import OrchestrationRequest, OrchestrationState, next_step_slot, record_step
from toolorchestrator.tools.registry import ToolRegistry, normalize_tool_result
from toolorchestrator.utils.error_handler import with_error_boundary
from toolorchestrator.utils.logging_utils import log_node_entry, log_node_exit, log_tool_call, log_tool_result

LOGGER = logging.getLogger("toolorchestrator.executor")


async def execute_tool_call(
    ctx: OrchestratorContext,
    registry: ToolRegistry,
    call: PlannedToolCall,
    step_id: str,
    *,
    not_before: float = 0.0,
) -> Tuple[ToolExecution, OrchestrationStep]:
    """Run one planned call and record it whatever the outcome.

    Knowledge search calls without store ids get the configured ones. Failed
    results are data; only an exception escaping the registry propagates.
    """
    ctx.check_cancelled()

    parameters = dict(call.parameters)
    if call.name == KNOWLEDGE_SEARCH_TOOL and VECTOR_STORE_IDS_PARAM not in parameters:
        parameters[VECTOR_STORE_IDS_PARAM] = list(ctx.vector_store_ids)

    ctx.log(f"🔧 Executing {call.name}")
    log_tool_call(LOGGER, call.name, parameters)

    start = now_ms()
    raw = await registry.execute_tool(call.name, parameters)
    end = max(now_ms(), start)

    result = normalize_tool_result(raw)
    log_tool_result(LOGGER, call.name, result.data if result.success else result.error, result.success, end - start)

    execution = ToolExecution(tool=call.name, parameters=parameters, result=result, start_time=start, end_time=end)
    step = OrchestrationStep(
        id=step_id,
        type="tool_call",
        timestamp=next_timestamp(not_before),
        content=f"Executed {call.name}",
        tool_execution=execution,
        reasoning=call.reasoning,
    )
    return execution, step


def build_execute_node(*, ctx: OrchestratorContext, request: OrchestrationRequest):
    """Create the node that runs the first pending call."""

    @with_error_boundary("execute")
    async def execute_node(state: OrchestrationState) -> OrchestrationState:
        log_node_entry(LOGGER, "execute", state)

        call, *remaining = state["pending_calls"]
        step_id, not_before = next_step_slot(state)
        execution, step = await execute_tool_call(ctx, request.registry, call, step_id, not_before=not_before)

        outcome = "succeeded" if execution.result.success else "failed"
        updates = record_step(step, turn=f"Tool {call.name} {outcome}")
        updates.update(
            tool_calls=[execution],
            tool_count=state.get("tool_count", 0) + 1,
            pending_calls=remaining,
        )

        log_node_exit(LOGGER, "execute", updates)
        return updates

    return execute_node
