"""Tests for the individual stage functions and the shared stage context."""

import logging

import pytest

from conftest import FakeToolRegistry, ScriptedProvider
from toolorchestrator.graph.context import CancellationSignal, OrchestratorContext, next_timestamp
from toolorchestrator.graph.nodes import (
    decide_tool_usage,
    evaluate_progress,
    execute_tool_call,
    fallback_tool_calls,
    perform_analysis,
    refine_synthesis,
    synthesize_final_response,
    validate_response_format,
)
from toolorchestrator.graph.parsing import SentinelOutputParser
from toolorchestrator.graph.schema import AttachedFile, PlannedToolCall
from toolorchestrator.models.provider import ProviderConfig
from toolorchestrator.tools.registry import ToolDescriptor
from toolorchestrator.utils.error_handler import ConfigurationError, OrchestrationCancelled

KNOWLEDGE_TOOL = ToolDescriptor(name="vector_file_search", category="knowledge", description="Search documents")


def _resolver(model):
    if "/" in model:
        raise ConfigurationError("Missing OPENROUTER_API_KEY")
    return ProviderConfig(provider="openai", api_key="sk-test")


def _context(provider=None, **kwargs):
    return OrchestratorContext(
        provider=provider or ScriptedProvider(),
        resolve_model=_resolver,
        parser=SentinelOutputParser(),
        **kwargs,
    )


class TestFallbackToolCalls:
    def test_calendar_keywords_win(self):
        registry = FakeToolRegistry(tools=[KNOWLEDGE_TOOL])

        calls = fallback_tool_calls("Any meetings on Friday?", registry, ["vs_1"])

        assert calls == [PlannedToolCall(name="get_events", parameters={})]

    def test_knowledge_search_when_registered(self):
        registry = FakeToolRegistry(tools=[KNOWLEDGE_TOOL])

        calls = fallback_tool_calls("What is the travel policy?", registry, ["vs_1"])

        assert calls[0].name == "vector_file_search"
        assert calls[0].parameters == {"query": "What is the travel policy?", "vector_store_ids": ["vs_1"]}

    def test_calendar_listing_even_when_unregistered(self):
        calls = fallback_tool_calls("What is the travel policy?", FakeToolRegistry())

        assert [call.name for call in calls] == ["get_events"]


class TestExecuteToolCall:
    @pytest.mark.asyncio
    async def test_injects_vector_store_ids(self):
        registry = FakeToolRegistry(tools=[KNOWLEDGE_TOOL])
        ctx = _context(vector_store_ids=("vs_1", "vs_2"))

        execution, step = await execute_tool_call(
            ctx, registry, PlannedToolCall(name="vector_file_search", parameters={"query": "visa"}), "step_3"
        )

        assert registry.executed == [("vector_file_search", {"query": "visa", "vector_store_ids": ["vs_1", "vs_2"]})]
        assert execution.parameters["vector_store_ids"] == ["vs_1", "vs_2"]
        assert step.id == "step_3"
        assert step.type == "tool_call"
        assert step.content == "Executed vector_file_search"
        assert step.tool_execution == execution

    @pytest.mark.asyncio
    async def test_explicit_store_ids_are_kept(self):
        registry = FakeToolRegistry(tools=[KNOWLEDGE_TOOL])
        ctx = _context(vector_store_ids=("vs_1",))
        call = PlannedToolCall(name="vector_file_search", parameters={"query": "q", "vector_store_ids": ["custom"]})

        await execute_tool_call(ctx, registry, call, "step_2")

        assert registry.executed[0][1]["vector_store_ids"] == ["custom"]

    @pytest.mark.asyncio
    async def test_failed_result_is_recorded(self):
        registry = FakeToolRegistry(
            tools=[ToolDescriptor(name="get_events", category="calendar", description="")],
            results={"get_events": {"success": False, "error": "down"}},
        )

        execution, step = await execute_tool_call(_context(), registry, PlannedToolCall(name="get_events"), "step_2")

        assert execution.result.success is False
        assert execution.result.error == "down"
        assert execution.duration == execution.end_time - execution.start_time >= 0

    @pytest.mark.asyncio
    async def test_registry_exception_propagates(self):
        registry = FakeToolRegistry(
            tools=[ToolDescriptor(name="get_events", category="calendar", description="")],
            results={"get_events": RuntimeError("registry crashed")},
        )

        with pytest.raises(RuntimeError, match="registry crashed"):
            await execute_tool_call(_context(), registry, PlannedToolCall(name="get_events"), "step_2")

    @pytest.mark.asyncio
    async def test_cancelled_before_execution(self):
        registry = FakeToolRegistry(tools=[ToolDescriptor(name="get_events", category="calendar", description="")])
        signal = CancellationSignal()
        signal.cancel("user left")

        with pytest.raises(OrchestrationCancelled, match="user left"):
            await execute_tool_call(_context(cancel_signal=signal), registry, PlannedToolCall(name="get_events"), "s")
        assert registry.executed == []


class TestCompletionStages:
    @pytest.mark.asyncio
    async def test_analysis_uses_low_temperature_and_images(self, calendar_registry):
        provider = ScriptedProvider()
        files = [AttachedFile(file_name="a.png", is_image=True, image_data_url="data:image/png;base64,AA")]

        step = await perform_analysis(
            _context(provider), "Show meetings", [], calendar_registry, "gpt-4.1-mini", "step_1", files
        )

        call = provider.calls[0]
        assert step.type == "analysis"
        assert step.reasoning == "Initial analysis and planning"
        assert call.temperature == 0.1
        assert call.images[0].image_data == "data:image/png;base64,AA"

    @pytest.mark.asyncio
    async def test_reasoning_model_gets_no_temperature(self, calendar_registry):
        provider = ScriptedProvider()

        await decide_tool_usage(_context(provider), "USER:\nq", calendar_registry, [], [], "o4-mini", "step_2")

        assert provider.calls[0].temperature is None

    @pytest.mark.asyncio
    async def test_planning_step_is_evaluation_type(self, calendar_registry):
        step = await decide_tool_usage(_context(), "USER:\nq", calendar_registry, [], [], "gpt-4.1-mini", "step_2")

        assert step.type == "evaluation"
        assert "CALL_TOOLS" in step.content

    @pytest.mark.asyncio
    async def test_empty_provider_text_becomes_no_response(self):
        provider = ScriptedProvider({"evaluate": ""})

        step = await evaluate_progress(_context(provider), "q", "ctx", [], [], "gpt-4.1-mini", "step_4")

        assert step.content == "No response"

    @pytest.mark.asyncio
    async def test_synthesis_and_refinement_temperature(self):
        provider = ScriptedProvider()
        ctx = _context(provider)

        synth = await synthesize_final_response(ctx, "q", [], [], "gpt-4.1-mini", "step_5")
        refined = await refine_synthesis(ctx, "q", [], [], synth.content, "shorter", "gpt-4.1-mini", "step_7")

        assert synth.type == refined.type == "synthesis"
        assert [c.temperature for c in provider.calls] == [0.3, 0.3]

    @pytest.mark.asyncio
    async def test_validation_runs_on_given_model(self):
        provider = ScriptedProvider()

        step = await validate_response_format(_context(provider), "q", "draft", "gpt-4.1-nano", "step_6")

        assert step.type == "evaluation"
        assert provider.calls[0].model == "gpt-4.1-nano"
        assert provider.calls[0].temperature is None

    @pytest.mark.asyncio
    async def test_configuration_error_before_provider_call(self, calendar_registry):
        provider = ScriptedProvider()

        with pytest.raises(ConfigurationError):
            await perform_analysis(_context(provider), "q", [], calendar_registry, "anthropic/claude", "step_1")
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_timestamp_never_precedes_previous_step(self):
        future = next_timestamp() + 60_000

        step = await evaluate_progress(_context(), "q", "ctx", [], [], "gpt-4.1-mini", "step_4", not_before=future)

        assert step.timestamp == future


class TestStageContext:
    def test_log_relays_to_callback(self, caplog):
        messages = []
        ctx = _context(progress_callback=messages.append)

        with caplog.at_level(logging.INFO):
            ctx.log("🔧 Executing get_events")

        assert messages == ["🔧 Executing get_events"]
        assert "Executing get_events" in caplog.text

    def test_failing_callback_is_ignored(self, caplog):
        def explode(message):
            raise ValueError("ui disconnected")

        ctx = _context(progress_callback=explode)

        with caplog.at_level(logging.WARNING):
            ctx.log("✅ Orchestration finished")

        assert "ui disconnected" in caplog.text

    def test_deadline(self):
        now = [100.0]
        signal = CancellationSignal(5, clock=lambda: now[0])

        assert signal.cancelled is False
        signal.raise_if_cancelled()

        now[0] = 105.0
        assert signal.cancelled is True
        with pytest.raises(OrchestrationCancelled, match="deadline"):
            signal.raise_if_cancelled()

    def test_explicit_cancel_keeps_reason(self):
        signal = CancellationSignal()
        signal.cancel("user closed the tab")

        assert signal.cancelled is True
        with pytest.raises(OrchestrationCancelled, match="user closed the tab"):
            signal.raise_if_cancelled()
