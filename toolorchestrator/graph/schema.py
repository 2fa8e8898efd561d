"""Data model for one orchestration run."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from toolorchestrator.tools.registry import ToolResult

StepType = Literal["analysis", "tool_call", "evaluation", "synthesis"]

STEP_ID_PREFIX = "step_"


def make_step_id(sequence: int) -> str:
    return f"{STEP_ID_PREFIX}{sequence}"


class ToolExecution(BaseModel):
    """One recorded tool invocation. Immutable once recorded."""

    model_config = ConfigDict(frozen=True)

    tool: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
    result: ToolResult
    start_time: float  # epoch milliseconds
    end_time: float

    @model_validator(mode="after")
    def _check_window(self) -> "ToolExecution":
        if self.end_time < self.start_time:
            raise ValueError("end_time precedes start_time")
        return self

    @computed_field
    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


class OrchestrationStep(BaseModel):
    """One atomic record in the append-only step log."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: StepType
    timestamp: float  # epoch milliseconds
    content: str
    tool_execution: Optional[ToolExecution] = None
    reasoning: Optional[str] = None

    @property
    def sequence(self) -> int:
        """Numeric position encoded in ``id``."""
        return int(self.id[len(STEP_ID_PREFIX):])


class PlannedToolCall(BaseModel):
    """One entry of a structured CALL_TOOLS block."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    parameters: Dict[str, Any] = Field(default_factory=dict)
    reasoning: Optional[str] = None

    @field_validator("parameters", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class InternalTurn(BaseModel):
    """A compact working-memory turn, separate from the caller's chat history."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str


class ChatHistoryEntry(BaseModel):
    """A caller-supplied chat message, used for tone and context only."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: Literal["user", "assistant", "system"]
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AttachedFile(BaseModel):
    """An already-processed attachment. Conversion happens upstream."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    file_name: str
    file_type: Optional[str] = None
    file_size: int = 0
    is_image: bool = False
    image_data_url: Optional[str] = None


class OrchestratorConfig(BaseModel):
    """Per-call budgets. Both counters hard-stop the main loop."""

    model_config = ConfigDict(frozen=True)

    max_steps: int = Field(default=10, ge=1)
    max_tool_calls: int = Field(default=5, ge=1)
    development_mode: bool = False
    validation_model: Optional[str] = None


class OrchestrationResult(BaseModel):
    """Final envelope returned by ``ToolOrchestrator.orchestrate``."""

    model_config = ConfigDict(frozen=True)

    success: bool
    final_answer: str
    steps: List[OrchestrationStep] = Field(default_factory=list)
    tool_calls: List[ToolExecution] = Field(default_factory=list)
    error: Optional[str] = None
    file_processing_used: Optional[bool] = None
