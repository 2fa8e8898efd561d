"""Tool registry contract and the in-process reference registry."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Union, runtime_checkable

from langchain_core.tools import BaseTool
from pydantic import BaseModel, ConfigDict, field_validator

LOGGER = logging.getLogger(__name__)


class ToolResult(BaseModel):
    """Uniform outcome of one tool execution."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    success: bool
    data: Any = None
    error: Optional[str] = None
    message: Optional[str] = None

    @field_validator("error", "message", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        # Registries may report structured errors such as {"code": 503}
        if value is None or isinstance(value, str):
            return value
        return json.dumps(value, default=str)


@dataclass(frozen=True, slots=True)
class ToolDescriptor:
    """Describes a registered tool to the prompt composer."""

    name: str
    category: str
    description: str
    parameters: Dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class ToolRegistry(Protocol):
    """Capability discovery and uniform invocation consumed by the orchestrator.

    ``execute_tool`` is expected to turn tool-level exceptions into a failed
    :class:`ToolResult`; anything it raises aborts the orchestration.
    """

    def get_available_categories(self) -> List[str]: ...

    def get_tools_by_category(self, category: str) -> List[Any]: ...

    def get_available_tools(self) -> List[Any]: ...

    async def execute_tool(self, name: str, parameters: Dict[str, Any]) -> Union[ToolResult, Mapping[str, Any]]: ...


def normalize_tool_result(output: Any) -> ToolResult:
    """Coerce a registry or tool return value into a ToolResult.

    A mapping carrying a ``success`` key is read field by field; any other value
    is treated as successful data.
    """
    if isinstance(output, ToolResult):
        return output
    if isinstance(output, Mapping) and "success" in output:
        return ToolResult.model_validate(dict(output))
    return ToolResult(success=True, data=output)


class DefaultToolRegistry:
    """Tracks LangChain tools grouped by category and executes them by name."""

    def __init__(self, tools: Optional[Mapping[str, Iterable[BaseTool]]] = None) -> None:
        self._tools: Dict[str, BaseTool] = {}
        self._categories: Dict[str, str] = {}
        if tools:
            for category, items in tools.items():
                for tool in items:
                    self.register_tool(tool, category)

    def register_tool(self, tool: BaseTool, category: str) -> None:
        self._tools[tool.name] = tool
        self._categories[tool.name] = category

    def get_tool(self, name: str) -> BaseTool:
        if name not in self._tools:
            raise KeyError(f"Unknown tool: {name}")
        return self._tools[name]

    def _describe(self, name: str) -> ToolDescriptor:
        tool = self._tools[name]
        return ToolDescriptor(
            name=name,
            category=self._categories[name],
            description=tool.description or "",
            parameters=dict(tool.args),
        )

    def get_available_tools(self) -> List[ToolDescriptor]:
        return [self._describe(name) for name in self._tools]

    def get_tools_by_category(self, category: str) -> List[ToolDescriptor]:
        return [self._describe(name) for name, cat in self._categories.items() if cat == category]

    def get_available_categories(self) -> List[str]:
        return sorted(set(self._categories.values()))

    async def execute_tool(self, name: str, parameters: Dict[str, Any]) -> ToolResult:
        """Run a tool and normalise its outcome.

        Unknown tools and tool exceptions become failed results, never raised
        errors. A tool may return a ``ToolResult``, a mapping with a ``success``
        key, or any other value which is treated as successful data.
        """
        tool = self._tools.get(name)
        if tool is None:
            LOGGER.warning(f"Requested unknown tool: {name}")
            return ToolResult(success=False, error=f"Tool '{name}' not found", message=f"Unknown tool: {name}")

        try:
            output = await tool.ainvoke(dict(parameters))
        except Exception as e:
            LOGGER.warning(f"Tool {name} failed: {type(e).__name__}: {e}")
            return ToolResult(success=False, error=str(e) or type(e).__name__, message=f"Failed to execute tool: {name}")

        return normalize_tool_result(output)
