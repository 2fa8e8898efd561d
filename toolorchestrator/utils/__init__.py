"""Logging and error-handling helpers."""

from .error_handler import (
    ConfigurationError,
    ModelInvocationError,
    OrchestrationCancelled,
    OrchestratorError,
    handle_model_error,
    with_error_boundary,
)
from .logging_utils import setup_logging

__all__ = [
    "ConfigurationError",
    "ModelInvocationError",
    "OrchestrationCancelled",
    "OrchestratorError",
    "handle_model_error",
    "with_error_boundary",
    "setup_logging",
]
