"""Pytest configuration and shared fakes.

The fakes stand in for the two external collaborators of the orchestrator: the
completion provider and the tool registry. ``ScriptedProvider`` recognises the
stage from the first line of each prompt and answers from a per-stage script.
"""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import pytest

# Ensure project root is in PYTHONPATH for imports to work
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from toolorchestrator.config.settings import (  # noqa: E402
    GovernanceSettings,
    KnowledgeSettings,
    ObservabilitySettings,
    ProviderSettings,
    Settings,
)
from toolorchestrator.models.provider import CompletionResult, ImageInput, ProviderConfig  # noqa: E402
from toolorchestrator.tools.registry import ToolDescriptor, ToolResult  # noqa: E402

STAGE_PREFIXES = {
    "analysis": "Today is",
    "plan": "You are planning the **NEXT TOOL ACTION**",
    "evaluate": "## PROGRESS CHECK",
    "synthesize": "You are composing the **FINAL ANSWER**",
    "validate": "## FORMAT VALIDATION",
    "refine": "## REFINE RESPONSE",
}

DEFAULT_RESPONSES = {
    "analysis": "1. REQUEST DECOMPOSITION\nList the meetings.\n5. COMPLEXITY ASSESSMENT\nSimple.",
    "plan": 'CALL_TOOLS:\n```json\n[{"name": "get_events", "parameters": {}}]\n```',
    "evaluate": "COMPLETE: the calendar data answers the question.",
    "synthesize": "Here are your meetings.",
    "validate": "FORMAT_ACCEPTABLE: ok",
    "refine": "Here are your meetings, refined.",
}

ENV_VARS = (
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "OPENROUTER_API_KEY",
    "OPENROUTER_BASE_URL",
    "ORCHESTRATOR_DEFAULT_MODEL",
    "ORCHESTRATOR_MODEL",
    "ORCHESTRATOR_VALIDATION_MODEL",
    "ORCHESTRATOR_MAX_STEPS",
    "ORCHESTRATOR_MAX_TOOL_CALLS",
    "ORCHESTRATOR_DEV_MODE",
    "ORCHESTRATOR_DEVELOPMENT_MODE",
    "ORCHESTRATOR_DEADLINE_SECONDS",
    "VECTOR_SEARCH_CONFIG",
    "TOOL_CATEGORIES_CONFIG",
    "LOG_LEVEL",
    "LOG_DIR",
)


def detect_stage(prompt: str) -> str:
    head = prompt.lstrip()
    for stage, prefix in STAGE_PREFIXES.items():
        if head.startswith(prefix):
            return stage
    raise AssertionError(f"Unrecognised prompt: {head[:80]!r}")


@dataclass
class ProviderCall:
    stage: str
    prompt: str
    model: str
    temperature: Optional[float]
    images: Optional[Sequence[ImageInput]]
    config: ProviderConfig


Response = Union[str, Exception]


class ScriptedProvider:
    """Completion provider answering from a per-stage script.

    Each stage maps to a response or a list of responses consumed in order; the
    last entry repeats once the list is exhausted. An exception entry is raised.
    """

    def __init__(self, script: Optional[Dict[str, Union[Response, List[Response]]]] = None):
        self.script: Dict[str, List[Response]] = {}
        for stage, responses in (script or {}).items():
            self.script[stage] = list(responses) if isinstance(responses, list) else [responses]
        self.calls: List[ProviderCall] = []

    async def generate_text(
        self,
        prompt: str,
        provider_config: ProviderConfig,
        *,
        model: str,
        temperature: Optional[float] = None,
        images: Optional[Sequence[ImageInput]] = None,
        messages=None,
    ) -> CompletionResult:
        stage = detect_stage(prompt)
        self.calls.append(ProviderCall(stage, prompt, model, temperature, images, provider_config))

        responses = self.script.get(stage) or [DEFAULT_RESPONSES[stage]]
        response = responses.pop(0) if len(responses) > 1 else responses[0]
        if isinstance(response, Exception):
            raise response
        return CompletionResult(text=response)

    def stages(self) -> List[str]:
        return [call.stage for call in self.calls]

    def calls_for(self, stage: str) -> List[ProviderCall]:
        return [call for call in self.calls if call.stage == stage]


ToolOutcome = Union[ToolResult, Dict[str, Any], Exception, Callable[[Dict[str, Any]], Any]]


class FakeToolRegistry:
    """In-memory registry that records every execution."""

    def __init__(self, tools: Sequence[ToolDescriptor] = (), results: Optional[Dict[str, ToolOutcome]] = None):
        self.tools = list(tools)
        self.results = dict(results or {})
        self.executed: List[tuple] = []

    def get_available_categories(self) -> List[str]:
        return sorted({tool.category for tool in self.tools})

    def get_tools_by_category(self, category: str) -> List[ToolDescriptor]:
        return [tool for tool in self.tools if tool.category == category]

    def get_available_tools(self) -> List[ToolDescriptor]:
        return list(self.tools)

    async def execute_tool(self, name: str, parameters: Dict[str, Any]):
        self.executed.append((name, dict(parameters)))
        if name not in {tool.name for tool in self.tools}:
            return {"success": False, "error": f"Tool '{name}' not found"}
        outcome = self.results.get(name, {"success": True, "data": {"items": [name]}})
        if callable(outcome) and not isinstance(outcome, ToolResult):
            outcome = outcome(parameters)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def clean_env(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


@pytest.fixture
def settings(clean_env):
    return Settings(
        _env_file=None,
        providers=ProviderSettings(_env_file=None, OPENAI_API_KEY="sk-test"),
        governance=GovernanceSettings(_env_file=None),
        knowledge=KnowledgeSettings(_env_file=None),
        observability=ObservabilitySettings(_env_file=None),
    )


@pytest.fixture
def provider():
    return ScriptedProvider()


@pytest.fixture
def calendar_registry():
    return FakeToolRegistry(
        tools=[ToolDescriptor(name="get_events", category="calendar", description="List calendar events")],
        results={"get_events": {"success": True, "data": [{"summary": "Acme sync", "start": "2026-10-26T10:00:00Z"}]}},
    )


@pytest.fixture
def empty_registry():
    return FakeToolRegistry()
