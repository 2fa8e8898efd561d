"""Observability helpers (LangSmith tracing)."""

from __future__ import annotations

import os

from toolorchestrator.config.settings import ObservabilitySettings


def configure_tracing(settings: ObservabilitySettings) -> None:
    """Export LangSmith variables so LangChain model calls are traced."""

    if settings.langsmith_project:
        os.environ["LANGCHAIN_PROJECT"] = settings.langsmith_project
    if settings.langsmith_api_key:
        os.environ["LANGCHAIN_API_KEY"] = settings.langsmith_api_key
    if settings.langsmith_endpoint:
        os.environ["LANGCHAIN_ENDPOINT"] = settings.langsmith_endpoint
    if settings.tracing_enabled:
        os.environ["LANGCHAIN_TRACING_V2"] = "true"
