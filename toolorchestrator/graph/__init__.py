"""Orchestration graph: data model, stages and state machine."""

from .builder import build_state_graph, recursion_limit
from .context import CancellationSignal, OrchestratorContext, ProgressCallback
from .parsing import OutputParser, SentinelOutputParser
from .schema import (
    AttachedFile,
    ChatHistoryEntry,
    InternalTurn,
    OrchestrationResult,
    OrchestrationStep,
    OrchestratorConfig,
    PlannedToolCall,
    ToolExecution,
)
from .state import OrchestrationRequest, OrchestrationState, initial_state

__all__ = [
    "AttachedFile",
    "CancellationSignal",
    "ChatHistoryEntry",
    "InternalTurn",
    "OrchestrationRequest",
    "OrchestrationResult",
    "OrchestrationState",
    "OrchestrationStep",
    "OrchestratorConfig",
    "OrchestratorContext",
    "OutputParser",
    "PlannedToolCall",
    "ProgressCallback",
    "SentinelOutputParser",
    "ToolExecution",
    "build_state_graph",
    "initial_state",
    "recursion_limit",
]
