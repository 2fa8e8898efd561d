"""Public facade and runtime assembly for the tool orchestrator."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from langchain_core.tools import BaseTool

from toolorchestrator.config import Settings, get_settings, load_knowledge_config
from toolorchestrator.graph import (
    AttachedFile,
    CancellationSignal,
    ChatHistoryEntry,
    OrchestrationRequest,
    OrchestrationResult,
    OrchestrationStep,
    OrchestratorConfig,
    OrchestratorContext,
    OutputParser,
    ProgressCallback,
    SentinelOutputParser,
    build_state_graph,
    initial_state,
    recursion_limit,
)
from toolorchestrator.graph.context import EMPTY_RESPONSE
from toolorchestrator.models import CompletionProvider, LangChainCompletionProvider
from toolorchestrator.telemetry import configure_tracing
from toolorchestrator.tools import DefaultToolRegistry, ToolRegistry, create_tool_registry, load_tool_category_config
from toolorchestrator.utils.logging_utils import log_error, setup_logging

from .model_resolver import ModelResolver, build_model_resolver

LOGGER = logging.getLogger("toolorchestrator.app")

APOLOGY_MESSAGE = "I encountered an error while processing your request. Please try again."

ChatHistoryInput = Union[ChatHistoryEntry, Mapping[str, Any]]
AttachedFileInput = Union[AttachedFile, Mapping[str, Any]]


def _visible_steps(steps: Sequence[OrchestrationStep], development_mode: bool) -> List[OrchestrationStep]:
    if development_mode:
        return list(steps)
    return [step for step in steps if step.type == "synthesis"]


class ToolOrchestrator:
    """Runs Analysis → {Plan → Execute → Evaluate}* → Synthesis → {Validate → Refine}*.

    One instance can serve concurrent calls: the only shared state is the
    read-only knowledge-store id tuple and the default progress callback.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        vector_store_ids: Iterable[str] = (),
        completion_provider: Optional[CompletionProvider] = None,
        output_parser: Optional[OutputParser] = None,
        model_resolver: Optional[ModelResolver] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._vector_store_ids: Tuple[str, ...] = tuple(vector_store_ids)
        self._provider = completion_provider or LangChainCompletionProvider()
        self._parser = output_parser or SentinelOutputParser()
        self._resolve_model = model_resolver or build_model_resolver(self._settings.providers)
        self._progress_callback: Optional[ProgressCallback] = None

    @property
    def vector_store_ids(self) -> Tuple[str, ...]:
        return self._vector_store_ids

    def set_progress_callback(self, callback: Optional[ProgressCallback]) -> None:
        """Set or clear the default progress callback.

        A callback passed to :meth:`orchestrate` takes precedence for that call.
        """
        self._progress_callback = callback if callable(callback) else None

    def _default_config(self) -> OrchestratorConfig:
        governance = self._settings.governance
        return OrchestratorConfig(
            max_steps=governance.max_steps,
            max_tool_calls=governance.max_tool_calls,
            development_mode=governance.development_mode,
        )

    async def orchestrate(
        self,
        user_message: str,
        chat_history: Sequence[ChatHistoryInput],
        tool_registry: ToolRegistry,
        model: Optional[str] = None,
        config: Optional[OrchestratorConfig] = None,
        attached_files: Optional[Sequence[AttachedFileInput]] = None,
        *,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_signal: Optional[CancellationSignal] = None,
    ) -> OrchestrationResult:
        """Answer ``user_message`` using the tools in ``tool_registry``.

        Never raises for ordinary exceptions: any failure becomes a result with
        ``success=False``, a fixed apology and the underlying error message.
        Tool failures are data and do not fail the orchestration.

        Args:
            user_message: The request to answer
            chat_history: Earlier conversation, used for tone and context only
            tool_registry: Capability discovery and tool execution
            model: Model id, defaults to the configured default model
            config: Step/tool budgets and development mode
            attached_files: Already-processed attachments
            progress_callback: Milestone hook for this call only
            cancel_signal: Caller-held signal checked before every provider call and tool run

        Returns:
            OrchestrationResult
        """
        providers = self._settings.providers
        model = model or providers.default_model
        config = config or self._default_config()
        files_supplied = bool(attached_files)

        ctx = OrchestratorContext(
            provider=self._provider,
            resolve_model=self._resolve_model,
            parser=self._parser,
            vector_store_ids=self._vector_store_ids,
            progress_callback=progress_callback or self._progress_callback,
            cancel_signal=cancel_signal or CancellationSignal(self._settings.governance.deadline_seconds),
            validation_model=config.validation_model or providers.validation_model,
            prompt_log_length=self._settings.observability.log_prompt_max_length,
        )
        state: dict = {"steps": [], "tool_calls": []}

        try:
            ctx.log("🚀 Orchestration started")
            request = OrchestrationRequest(
                user_message=user_message,
                chat_history=tuple(
                    entry if isinstance(entry, ChatHistoryEntry) else ChatHistoryEntry.model_validate(entry)
                    for entry in chat_history or ()
                ),
                registry=tool_registry,
                model=model,
                validation_model=ctx.validation_model or model,
                attached_files=tuple(
                    item if isinstance(item, AttachedFile) else AttachedFile.model_validate(item)
                    for item in attached_files or ()
                ),
            )
            state = initial_state(request, config.max_steps, config.max_tool_calls)

            app = build_state_graph(ctx=ctx, request=request)
            run_config = {"recursion_limit": recursion_limit(config.max_steps, config.max_tool_calls)}
            async for snapshot in app.astream(state, config=run_config, stream_mode="values"):
                state = snapshot

            ctx.log("✅ Orchestration finished")
            return OrchestrationResult(
                success=True,
                final_answer=state.get("answer") or EMPTY_RESPONSE,
                steps=_visible_steps(state.get("steps", []), config.development_mode),
                tool_calls=list(state.get("tool_calls", [])),
                file_processing_used=True if files_supplied else None,
            )
        except Exception as e:
            log_error(LOGGER, e, context=f"orchestrate(model={model})")
            ctx.log(f"💥 Orchestration error: {e}")
            return OrchestrationResult(
                success=False,
                final_answer=APOLOGY_MESSAGE,
                steps=list(state.get("steps", [])) if config.development_mode else [],
                tool_calls=list(state.get("tool_calls", [])),
                error=str(e) or type(e).__name__,
                file_processing_used=True if files_supplied else None,
            )


def build_tool_registry(
    tools_by_category: Mapping[str, Iterable[BaseTool]],
    settings: Optional[Settings] = None,
) -> DefaultToolRegistry:
    """Register the given tools, keeping only categories enabled in the local config."""
    settings = settings or get_settings()
    categories = load_tool_category_config(settings.knowledge.tool_categories_config)
    return create_tool_registry(tools_by_category, categories)


def build_orchestrator(
    settings: Optional[Settings] = None,
    *,
    completion_provider: Optional[CompletionProvider] = None,
    output_parser: Optional[OutputParser] = None,
    configure_logging: bool = True,
) -> ToolOrchestrator:
    """Return a ToolOrchestrator wired from settings.

    Reads the knowledge-store config once and passes the ids in as a value.
    """
    settings = settings or get_settings()
    observability = settings.observability

    if configure_logging:
        level = getattr(logging, observability.log_level.upper(), logging.INFO)
        setup_logging(level, Path(observability.log_dir) if observability.log_dir else None)
    configure_tracing(observability)

    knowledge = load_knowledge_config(settings.knowledge.vector_search_config)

    return ToolOrchestrator(
        settings,
        vector_store_ids=knowledge.vector_store_ids,
        completion_provider=completion_provider,
        output_parser=output_parser,
    )
