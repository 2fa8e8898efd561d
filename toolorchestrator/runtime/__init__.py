"""Runtime assembly and the public orchestrator facade."""

from .app import APOLOGY_MESSAGE, ToolOrchestrator, build_orchestrator, build_tool_registry
from .model_resolver import ModelResolver, build_model_resolver, resolve_provider_config

__all__ = [
    "APOLOGY_MESSAGE",
    "ModelResolver",
    "ToolOrchestrator",
    "build_model_resolver",
    "build_orchestrator",
    "build_tool_registry",
    "resolve_provider_config",
]
