"""Bounded multi-step tool orchestration over a free-text completion provider."""

from .graph import (
    AttachedFile,
    CancellationSignal,
    ChatHistoryEntry,
    OrchestrationResult,
    OrchestrationStep,
    OrchestratorConfig,
    ToolExecution,
)
from .runtime import ToolOrchestrator, build_orchestrator, build_tool_registry
from .tools import DefaultToolRegistry, ToolDescriptor, ToolRegistry, ToolResult

__all__ = [
    "AttachedFile",
    "CancellationSignal",
    "ChatHistoryEntry",
    "DefaultToolRegistry",
    "OrchestrationResult",
    "OrchestrationStep",
    "OrchestratorConfig",
    "ToolDescriptor",
    "ToolExecution",
    "ToolOrchestrator",
    "ToolRegistry",
    "ToolResult",
    "build_orchestrator",
    "build_tool_registry",
]
