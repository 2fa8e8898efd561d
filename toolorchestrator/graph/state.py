"""Shared state definition for the orchestration graph."""

from __future__ import annotations

import operator
from dataclasses import dataclass
from typing import Annotated, Any, Dict, List, Optional, Tuple, TypedDict

from toolorchestrator.tools.registry import ToolRegistry

from .schema import (
    AttachedFile,
    ChatHistoryEntry,
    InternalTurn,
    OrchestrationStep,
    PlannedToolCall,
    ToolExecution,
    make_step_id,
)


class OrchestrationState(TypedDict, total=False):
    """State carried between graph nodes during one orchestration.

    Lifecycle:
    - analysis: one step, seeds the internal conversation
    - plan → execute* → evaluate: repeated within the step/tool budgets
    - synthesize → (validate → refine)*: at most three validation rounds
    """

    # ========== Append-only logs ==========
    steps: Annotated[List[OrchestrationStep], operator.add]
    tool_calls: Annotated[List[ToolExecution], operator.add]
    conversation: Annotated[List[InternalTurn], operator.add]

    # ========== Step bookkeeping ==========
    step_counter: int       # Sequence number of the last recorded step
    last_timestamp: float   # Timestamp of the last recorded step (epoch ms)

    # ========== Budgets ==========
    max_steps: int
    max_tool_calls: int
    tool_count: int

    # ========== Plan / execute / evaluate loop ==========
    running_context: str                # Running context, rebuilt after each evaluation
    pending_calls: List[PlannedToolCall]
    plan_retry_pending: bool            # Next plan visit is the forced retry
    needs_more: bool

    # ========== Synthesis and validation ==========
    answer: str
    format_acceptable: bool
    feedback: str
    validation_rounds: int


@dataclass(frozen=True)
class OrchestrationRequest:
    """Immutable inputs of one orchestration call."""

    user_message: str
    chat_history: Tuple[ChatHistoryEntry, ...]
    registry: ToolRegistry
    model: str
    validation_model: str
    attached_files: Tuple[AttachedFile, ...] = ()


def initial_state(request: OrchestrationRequest, max_steps: int, max_tool_calls: int) -> OrchestrationState:
    return {
        "steps": [],
        "tool_calls": [],
        "conversation": [InternalTurn(role="user", content=request.user_message)],
        "step_counter": 0,
        "last_timestamp": 0.0,
        "max_steps": max_steps,
        "max_tool_calls": max_tool_calls,
        "tool_count": 0,
        "running_context": request.user_message,
        "pending_calls": [],
        "plan_retry_pending": False,
        "needs_more": True,
        "validation_rounds": 0,
    }


def next_step_slot(state: OrchestrationState) -> Tuple[str, float]:
    """Id for the next step and the earliest timestamp it may carry."""
    return make_step_id(state.get("step_counter", 0) + 1), state.get("last_timestamp", 0.0)


def record_step(step: OrchestrationStep, turn: Optional[str] = None) -> Dict[str, Any]:
    """State updates that append ``step`` and, optionally, an assistant turn."""
    updates: Dict[str, Any] = {
        "steps": [step],
        "step_counter": step.sequence,
        "last_timestamp": step.timestamp,
    }
    if turn is not None:
        updates["conversation"] = [InternalTurn(role="assistant", content=turn)]
    return updates
