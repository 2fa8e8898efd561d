"""Conditional routing between orchestration stages."""

from __future__ import annotations

import logging
from typing import Literal, Optional

from toolorchestrator.utils.logging_utils import log_routing_decision

from .state import OrchestrationState

LOGGER = logging.getLogger("toolorchestrator.routing")

MAX_VALIDATION_ROUNDS = 3


def _has_tool_budget(state: OrchestrationState) -> bool:
    return state.get("tool_count", 0) < state.get("max_tool_calls", 1)


def _budget_exhausted(state: OrchestrationState) -> Optional[str]:
    """Reason the loop may not start another round, or None while both budgets allow one."""
    steps = len(state.get("steps", []))
    max_steps = state.get("max_steps", 1)
    if steps >= max_steps:
        return f"Step budget reached ({steps}/{max_steps})"
    if not _has_tool_budget(state):
        return f"Tool budget reached ({state.get('tool_count', 0)}/{state.get('max_tool_calls')})"
    return None


def analysis_route(state: OrchestrationState) -> Literal["plan", "synthesize"]:
    """Enter the tool loop only when the first round fits the budgets."""
    exhausted = _budget_exhausted(state)
    if exhausted:
        decision = "synthesize"
        reason = exhausted
    else:
        decision = "plan"
        reason = "Starting tool loop"

    log_routing_decision(LOGGER, "analysis", decision, reason)
    return decision


def plan_route(state: OrchestrationState) -> Literal["plan", "execute", "evaluate"]:
    """Route after planning.

    Returns:
        "plan": the model proposed nothing, run the forced retry
        "execute": calls are pending and the tool budget allows one more
        "evaluate": nothing left to run
    """
    if state.get("plan_retry_pending"):
        decision = "plan"
        reason = "No tool calls parsed, forcing one retry"
    else:
        decision = execute_route(state)
        reason = f"{len(state.get('pending_calls', []))} call(s) planned"

    log_routing_decision(LOGGER, "plan", decision, reason)
    return decision


def execute_route(state: OrchestrationState) -> Literal["execute", "evaluate"]:
    """Run the next pending call while the tool budget allows, otherwise evaluate."""
    pending = state.get("pending_calls", [])
    if pending and _has_tool_budget(state):
        return "execute"
    if pending:
        LOGGER.info(f"Tool budget exhausted, dropping {len(pending)} planned call(s)")
    return "evaluate"


def evaluate_route(state: OrchestrationState) -> Literal["plan", "synthesize"]:
    """Continue the loop only while evaluation asks for more and both budgets allow."""
    exhausted = _budget_exhausted(state)

    if not state.get("needs_more"):
        decision = "synthesize"
        reason = "Evaluation reported enough information"
    elif exhausted:
        decision = "synthesize"
        reason = exhausted
    else:
        decision = "plan"
        reason = "Evaluation asked for more information"

    log_routing_decision(LOGGER, "evaluate", decision, reason)
    return decision


def validate_route(state: OrchestrationState) -> Literal["refine", "end"]:
    if state.get("format_acceptable"):
        decision = "end"
        reason = "Format accepted"
    else:
        decision = "refine"
        reason = f"Format rejected (round {state.get('validation_rounds', 0)})"

    log_routing_decision(LOGGER, "validate", decision, reason)
    return decision


def refine_route(state: OrchestrationState) -> Literal["validate", "end"]:
    rounds = state.get("validation_rounds", 0)
    if rounds < MAX_VALIDATION_ROUNDS:
        decision = "validate"
        reason = f"Re-validating refined answer ({rounds}/{MAX_VALIDATION_ROUNDS} rounds used)"
    else:
        decision = "end"
        reason = "Validation round cap reached, returning last answer"

    log_routing_decision(LOGGER, "refine", decision, reason)
    return decision
