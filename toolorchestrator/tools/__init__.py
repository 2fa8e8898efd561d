"""Tool registry contract and helpers."""

from .config_loader import ToolCategoryConfig, create_tool_registry, load_tool_category_config
from .registry import DefaultToolRegistry, ToolDescriptor, ToolRegistry, ToolResult, normalize_tool_result

__all__ = [
    "DefaultToolRegistry",
    "ToolCategoryConfig",
    "ToolDescriptor",
    "ToolRegistry",
    "ToolResult",
    "create_tool_registry",
    "load_tool_category_config",
    "normalize_tool_result",
]
