"""Interpretation of free-text model output.

Stages talk to the model through plain text conventions: a ``CALL_TOOLS``
labeled JSON array for planning, ``CONTINUE``/``COMPLETE`` for evaluation and
``FORMAT_ACCEPTABLE``/``FORMAT_NEEDS_REFINEMENT`` for validation. The
``OutputParser`` protocol keeps those conventions swappable; a provider with
native structured output can implement it without touching the stages.
"""

from __future__ import annotations

import json
import logging
import re
from typing import List, Protocol

from pydantic import ValidationError

from .schema import PlannedToolCall

LOGGER = logging.getLogger("toolorchestrator.parsing")

CALL_TOOLS_LABEL = "CALL_TOOLS"
SUFFICIENT_INFO_SENTINEL = "SUFFICIENT_INFO"
CONTINUE_MARKER = "CONTINUE"
FORMAT_ACCEPTABLE_MARKER = "FORMAT_ACCEPTABLE"
FORMAT_REFINEMENT_MARKER = "FORMAT_NEEDS_REFINEMENT"

_LABEL_RE = re.compile(rf"{CALL_TOOLS_LABEL}\s*:?", re.IGNORECASE)
_OPENING_FENCE_RE = re.compile(r"\s*(?:```(?:json)?)?\s*", re.IGNORECASE)
_CONTINUE_RE = re.compile(CONTINUE_MARKER, re.IGNORECASE)
_LEADING_FENCE_RE = re.compile(r"^(?:```[a-zA-Z]*\s*)+")
_ACCEPTABLE_RE = re.compile(rf"^{FORMAT_ACCEPTABLE_MARKER}", re.IGNORECASE)
_REFINEMENT_RE = re.compile(rf"{FORMAT_REFINEMENT_MARKER}\s*:?\s*(.*)", re.IGNORECASE | re.DOTALL)


class OutputParser(Protocol):
    def parse_tool_calls(self, text: str) -> List[PlannedToolCall]: ...

    def needs_more_information(self, text: str) -> bool: ...

    def is_format_acceptable(self, text: str) -> bool: ...

    def refinement_feedback(self, text: str) -> str: ...


class SentinelOutputParser:
    """Regex and JSON based parser for the sentinel conventions."""

    def parse_tool_calls(self, text: str) -> List[PlannedToolCall]:
        """Return the first labeled tool-call array, or ``[]``.

        Never raises: a missing label, invalid JSON, a non-array payload or an
        entry without a tool name all yield an empty list.
        """
        if not text:
            return []

        for label in _LABEL_RE.finditer(text):
            start = _OPENING_FENCE_RE.match(text, label.end()).end()
            if not text.startswith("[", start):
                continue
            try:
                payload, _ = json.JSONDecoder().raw_decode(text, start)
            except ValueError as e:
                LOGGER.warning(f"Malformed {CALL_TOOLS_LABEL} block: {e}")
                return []
            if not isinstance(payload, list):
                return []
            try:
                return [PlannedToolCall.model_validate(item) for item in payload]
            except ValidationError as e:
                LOGGER.warning(f"Invalid entry in {CALL_TOOLS_LABEL} block: {e.error_count()} error(s)")
                return []

        return []

    def needs_more_information(self, text: str) -> bool:
        # Absence of the marker means complete
        return bool(text) and _CONTINUE_RE.search(text) is not None

    def is_format_acceptable(self, text: str) -> bool:
        cleaned = _LEADING_FENCE_RE.sub("", (text or "").strip())
        return _ACCEPTABLE_RE.match(cleaned) is not None

    def refinement_feedback(self, text: str) -> str:
        match = _REFINEMENT_RE.search(text or "")
        feedback = match.group(1) if match else (text or "")
        return feedback.strip().rstrip("`").strip()
