"""Tests for the stage error boundary and diagnostic hints."""

import inspect
import logging

import pytest

from toolorchestrator.utils.error_handler import (
    ConfigurationError,
    ModelInvocationError,
    OrchestrationCancelled,
    OrchestratorError,
    handle_model_error,
    with_error_boundary,
)


@pytest.mark.asyncio
async def test_async_boundary_wraps_unexpected_errors(caplog):
    @with_error_boundary("plan")
    async def node(state):
        raise RuntimeError("connection reset by peer")

    with caplog.at_level(logging.ERROR):
        with pytest.raises(ModelInvocationError) as exc_info:
            await node({})

    assert str(exc_info.value) == "connection reset by peer"
    assert exc_info.value.stage == "plan"
    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert "plan failed" in caplog.text


@pytest.mark.asyncio
async def test_async_boundary_passes_orchestrator_errors():
    @with_error_boundary("analysis")
    async def node(state):
        raise OrchestrationCancelled("Orchestration deadline exceeded")

    with pytest.raises(OrchestrationCancelled):
        await node({})


@pytest.mark.asyncio
async def test_async_boundary_returns_value():
    @with_error_boundary("evaluate")
    async def node(state):
        return {"needs_more": False}

    assert await node({}) == {"needs_more": False}
    assert node.__name__ == "node"
    assert inspect.iscoroutinefunction(node)


def test_sync_boundary():
    @with_error_boundary("route")
    def node(state):
        raise KeyError("pending_calls")

    with pytest.raises(ModelInvocationError) as exc_info:
        node({})
    assert exc_info.value.stage == "route"


def test_error_hierarchy():
    error = ConfigurationError("Missing OPENROUTER_API_KEY")

    assert isinstance(error, OrchestratorError)
    assert error.user_message == "Missing OPENROUTER_API_KEY"


@pytest.mark.parametrize(
    "message, hint",
    [
        ("Error code: 429 - rate_limit_exceeded", "rate limit"),
        ("Request timed out", "timed out"),
        ("maximum context length is 128000 tokens", "context window"),
        ("Error code: 401 - invalid_api_key", "credential"),
        ("You exceeded your current quota", "quota"),
        ("boom", "unavailable: boom"),
    ],
)
def test_handle_model_error(message, hint):
    assert hint in handle_model_error(Exception(message))
