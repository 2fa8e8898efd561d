"""Unified error handling for orchestration stages."""

from __future__ import annotations

import functools
import inspect
import logging
from typing import Any, Callable, Optional

LOGGER = logging.getLogger(__name__)


class OrchestratorError(Exception):
    """Base exception for orchestrator errors."""

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        self.user_message = user_message or message


class ConfigurationError(OrchestratorError):
    """Missing or invalid provider configuration."""
    pass


class ModelInvocationError(OrchestratorError):
    """Error during a completion provider call."""

    def __init__(self, message: str, user_message: Optional[str] = None, stage: Optional[str] = None):
        super().__init__(message, user_message)
        self.stage = stage


class OrchestrationCancelled(OrchestratorError):
    """The caller cancelled the run or its deadline passed."""
    pass


def with_error_boundary(stage: str):
    """Decorator that attributes stage failures before they reach the top-level handler.

    Orchestrator errors pass through untouched. Anything else is logged with the
    stage name and re-raised as :class:`ModelInvocationError` carrying the
    original message. Nothing is swallowed.

    Example:
        @with_error_boundary("plan")
        async def plan_node(state: OrchestrationState) -> dict:
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except OrchestratorError:
                raise
            except Exception as e:
                LOGGER.error(f"{stage} failed: {type(e).__name__}: {e}")
                LOGGER.debug(f"{stage} hint: {handle_model_error(e)}")
                raise ModelInvocationError(str(e), user_message=handle_model_error(e), stage=stage) from e

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except OrchestratorError:
                raise
            except Exception as e:
                LOGGER.error(f"{stage} failed: {type(e).__name__}: {e}")
                raise ModelInvocationError(str(e), user_message=handle_model_error(e), stage=stage) from e

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def handle_model_error(error: Exception) -> str:
    """Convert provider errors to a short diagnostic hint.

    Args:
        error: Exception raised during model invocation

    Returns:
        Human-readable hint
    """
    error_str = str(error).lower()

    if "rate_limit" in error_str or "429" in error_str:
        return "Provider rate limit reached, retry later"

    if "timeout" in error_str or "timed out" in error_str:
        return "Provider response timed out"

    if "context_length" in error_str or "maximum context" in error_str:
        return "Prompt exceeded the model context window"

    if "invalid_api_key" in error_str or "authentication" in error_str or "401" in error_str:
        return "Provider credential rejected"

    if "quota" in error_str or "insufficient" in error_str:
        return "Provider quota exhausted"

    return f"Completion provider unavailable: {error}"
