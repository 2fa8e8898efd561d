"""Prompt composition for every orchestration stage.

Per-category guidance lives in one declarative table, ``CATEGORY_GUIDANCE``.
Each record says when it applies (a registered category or a registered tool)
and carries the decision rules, notes and worked examples for that category.
Stage prompts only include the records that apply to the current registry, in
table order, which is also the category priority order shown to the model.

Stage prompts are Jinja2 templates under ``prompt_templates/`` rendered in a
sandboxed environment.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from jinja2.sandbox import SandboxedEnvironment

from toolorchestrator.tools.registry import ToolRegistry

from .formatting import (
    EVALUATION_PAYLOAD_LIMIT,
    KNOWLEDGE_SEARCH_TOOL,
    SYNTHESIS_PAYLOAD_LIMIT,
    VECTOR_STORE_IDS_PARAM,
    format_attachment_summary,
    format_chat_history,
    format_internal_conversation,
    summarize_data,
    tool_attr,
    tool_catalog,
    tool_outcome_digest,
)
from .parsing import CALL_TOOLS_LABEL, SUFFICIENT_INFO_SENTINEL
from .schema import AttachedFile, ChatHistoryEntry, InternalTurn, OrchestrationStep, ToolExecution

RETRY_DIRECTIVE = "\n\nSYSTEM_NOTE: A tool MUST be called."


@dataclass(frozen=True)
class CategoryGuidance:
    """Prompt material for one tool category.

    ``category`` matches a registry category name; ``tool`` matches a
    registered tool name. Either one switches the record on.
    """

    label: str
    category: Optional[str] = None
    tool: Optional[str] = None
    decision_rules: Tuple[str, ...] = ()
    analysis_note: Optional[str] = None
    context_note: Optional[str] = None
    analysis_example: Optional[str] = None
    call_example: Optional[Dict[str, Any]] = None

    def applies(self, categories: Sequence[str], tool_names: Sequence[str]) -> bool:
        if self.category is not None and self.category in categories:
            return True
        return self.tool is not None and self.tool in tool_names


CATEGORY_GUIDANCE: Tuple[CategoryGuidance, ...] = (
    CategoryGuidance(
        label="Calendar tools",
        category="calendar",
        decision_rules=(
            "**Calendar queries** → ALWAYS use `search_events` or `get_events` before answering.",
            "**Event creation / changes** → MUST call `create_event`, `update_event` or `delete_event` accordingly.",
        ),
        analysis_note="Use calendar tools for anything about meetings, schedules, projects, or dates.",
        context_note=(
            "**CALENDAR CONTEXT**: Any mention of projects, meetings, schedules, status, timelines, "
            "or deadlines is a calendar query."
        ),
        analysis_example=(
            "**Example – Calendar search**\n"
            'USER: "Show all Nespola meetings from March to June"\n'
            "→ Decompose as: objective = list meetings; tool = search_events; "
            'params = {query:"nespola", time_range:{start:"2025-03-01T00:00:00Z", end:"2025-06-30T23:59:59Z"}}.'
        ),
        call_example={
            "name": "search_events",
            "parameters": {
                "query": "project kickoff",
                "time_range": {"start": "2025-08-01T00:00:00Z", "end": "2025-08-31T23:59:59Z"},
            },
            "reasoning": "Need to list all kickoff meetings in August.",
        },
    ),
    CategoryGuidance(
        label=f"Knowledge ({KNOWLEDGE_SEARCH_TOOL})",
        tool=KNOWLEDGE_SEARCH_TOOL,
        decision_rules=(
            f"**Docs / visa / policy / general knowledge** → use `{KNOWLEDGE_SEARCH_TOOL}`. "
            f"Include the `{VECTOR_STORE_IDS_PARAM}` array every time.",
        ),
        analysis_note=f"For documentation / policy / visa questions, default to {KNOWLEDGE_SEARCH_TOOL}.",
        context_note=(
            "**KNOWLEDGE CONTEXT**: Questions about policies, visas, procedures, or general info "
            f"require {KNOWLEDGE_SEARCH_TOOL}."
        ),
        analysis_example=(
            "**Example – Knowledge query**\n"
            'USER: "What is the remote-work policy?"\n'
            f'→ Tool = {KNOWLEDGE_SEARCH_TOOL}; params = {{query:"remote work policy", {VECTOR_STORE_IDS_PARAM}:[…]}}.'
        ),
        call_example={
            "name": KNOWLEDGE_SEARCH_TOOL,
            "parameters": {"query": "visa requirements italy to indonesia"},
            "reasoning": "Retrieve the official visa requirement document.",
        },
    ),
    CategoryGuidance(
        label="Passport",
        category="passport",
        decision_rules=(
            "**Passport image / data operations** → use passport tools (`create_passport`, `get_passports`, etc.).",
        ),
        analysis_note=(
            "When the user uploads passport images or mentions passport fields, "
            "use passport tools to extract or manage data."
        ),
        context_note=(
            "**PASSPORT CONTEXT**: When passport images or numbers are involved, use passport tools. "
            "Creating, updating or deleting requires database tools; extraction alone is not persistence."
        ),
        call_example={
            "name": "create_passport",
            "parameters": {
                "passport_number": "YA1234567",
                "surname": "DOE",
                "given_names": "JOHN",
                "nationality": "ITALIAN",
                "date_of_birth": "1990-04-21",
                "sex": "M",
                "place_of_birth": "ROME",
                "date_of_issue": "2020-05-01",
                "date_of_expiry": "2030-04-30",
                "issuing_authority": "ROME POLICE",
                "holder_signature_present": True,
                "type": "passport",
            },
            "reasoning": "Store the extracted passport in the database.",
        },
    ),
    CategoryGuidance(
        label="File",
        category="file",
        decision_rules=("**File-system operations** → use file tools (`read_file`, `list_files`, …).",),
    ),
    CategoryGuidance(label="Email", category="email"),
    CategoryGuidance(label="Web", category="web"),
)

CLOSING_DECISION_RULES = (
    "If unsure which tool yields the required info, choose the **cheapest** query tool first.",
    f"If no tool can help, reply with **{SUFFICIENT_INFO_SENTINEL}** explaining why.",
)


def active_guidance(registry: ToolRegistry) -> List[CategoryGuidance]:
    """Guidance records that apply to ``registry``, in priority order."""
    categories = list(registry.get_available_categories())
    tool_names = [tool_attr(tool, "name") for tool in registry.get_available_tools()]
    return [entry for entry in CATEGORY_GUIDANCE if entry.applies(categories, tool_names)]


def generate_decision_rules(guidance: Sequence[CategoryGuidance]) -> str:
    rules = [rule for entry in guidance for rule in entry.decision_rules]
    rules.extend(CLOSING_DECISION_RULES)
    lines = [f"- {n}. {rule}" for n, rule in enumerate(rules, start=1)]
    return "**DECISION RULES**\n" + "\n".join(lines) + "\n"


def generate_priority_order(guidance: Sequence[CategoryGuidance]) -> str:
    lines = [f"{n}. {entry.label}" for n, entry in enumerate(guidance, start=1)]
    return "\n".join(["**CATEGORY PRIORITY**", *lines]) + "\n"


def generate_analysis_instructions(guidance: Sequence[CategoryGuidance]) -> str:
    lines = [
        "**ALWAYS REMEMBER**",
        "- Never guess; always prefer tool data.",
        "- Ask clarifying questions if user intent is vague.",
    ]
    lines.extend(f"- {entry.analysis_note}" for entry in guidance if entry.analysis_note)
    return "\n".join(lines) + "\n"


def generate_context_instructions(guidance: Sequence[CategoryGuidance]) -> str:
    return "\n".join(entry.context_note for entry in guidance if entry.context_note) + "\n"


def generate_analysis_examples(guidance: Sequence[CategoryGuidance]) -> str:
    return "\n\n".join(entry.analysis_example for entry in guidance if entry.analysis_example) + "\n"


def generate_tool_examples(guidance: Sequence[CategoryGuidance], vector_store_ids: Sequence[str] = ()) -> str:
    blocks = ["**EXAMPLE CALL_TOOLS BLOCKS**"]
    for entry in guidance:
        if entry.call_example is None:
            continue
        example = json.loads(json.dumps(entry.call_example))
        if example["name"] == KNOWLEDGE_SEARCH_TOOL:
            example["parameters"][VECTOR_STORE_IDS_PARAM] = list(vector_store_ids)
        payload = json.dumps([example], indent=2, ensure_ascii=False)
        blocks.append(f"```json\n{CALL_TOOLS_LABEL}:\n{payload}\n```")
    return "\n\n".join(blocks) + "\n"


def format_today(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{today:%A}, {today:%B} {today.day}, {today.year}"


class PromptBuilder:
    """Loads and renders the stage templates."""

    TEMPLATE_DIR = Path(__file__).parent / "prompt_templates"
    ANALYSIS_TEMPLATE = "analysis.jinja2"
    PLANNING_TEMPLATE = "planning.jinja2"
    EVALUATION_TEMPLATE = "evaluation.jinja2"
    SYNTHESIS_TEMPLATE = "synthesis.jinja2"
    VALIDATION_TEMPLATE = "validation.jinja2"
    REFINEMENT_TEMPLATE = "refinement.jinja2"

    @classmethod
    def _load_template(cls, name: str) -> str:
        with open(cls.TEMPLATE_DIR / name, "r", encoding="utf-8") as f:
            return f.read()

    @staticmethod
    def _render_template(template: str, params: dict) -> str:
        env = SandboxedEnvironment()
        return env.from_string(template).render(**params)

    @classmethod
    def render(cls, name: str, **params: Any) -> str:
        return cls._render_template(cls._load_template(name), params)


def build_analysis_prompt(
    user_message: str,
    chat_history: Sequence[ChatHistoryEntry],
    registry: ToolRegistry,
    vector_store_ids: Sequence[str] = (),
    attached_files: Sequence[AttachedFile] = (),
    today: Optional[date] = None,
) -> str:
    guidance = active_guidance(registry)
    return PromptBuilder.render(
        PromptBuilder.ANALYSIS_TEMPLATE,
        today=format_today(today),
        chat_history=format_chat_history(chat_history),
        user_message=user_message,
        attachments=format_attachment_summary(attached_files),
        tool_catalog=tool_catalog(registry, vector_store_ids),
        analysis_instructions=generate_analysis_instructions(guidance),
        context_instructions=generate_context_instructions(guidance),
        analysis_examples=generate_analysis_examples(guidance),
    )


def build_planning_prompt(
    context: str,
    registry: ToolRegistry,
    vector_store_ids: Sequence[str] = (),
    previous_calls: Sequence[ToolExecution] = (),
    previous_steps: Sequence[OrchestrationStep] = (),
    conversation: Sequence[InternalTurn] = (),
    attached_files: Sequence[AttachedFile] = (),
) -> str:
    guidance = active_guidance(registry)
    calls = "\n".join(
        f"- {call.tool} -> {'SUCCESS' if call.result.success else 'FAIL'} ({call.duration:.0f}ms)"
        for call in previous_calls
    )
    steps = " → ".join(f"[{step.id}] {step.type.upper()}" for step in previous_steps)
    return PromptBuilder.render(
        PromptBuilder.PLANNING_TEMPLATE,
        context=context,
        previous_calls=calls,
        previous_steps=steps,
        internal_conversation=format_internal_conversation(conversation),
        files="\n".join(f"- {f.file_name}" for f in attached_files),
        tool_catalog=tool_catalog(registry, vector_store_ids),
        decision_rules=generate_decision_rules(guidance),
        priority_order=generate_priority_order(guidance),
        tool_examples=generate_tool_examples(guidance, vector_store_ids),
    )


def build_evaluation_prompt(
    user_message: str,
    context: str,
    tool_calls: Sequence[ToolExecution],
    step_count: int,
    conversation: Sequence[InternalTurn] = (),
) -> str:
    outcomes = "\n\n".join(
        f"## {call.tool} {'✅' if call.result.success else '❌'}\n"
        f"Result: {summarize_data(call.result.data, EVALUATION_PAYLOAD_LIMIT)}"
        for call in tool_calls
    )
    return PromptBuilder.render(
        PromptBuilder.EVALUATION_TEMPLATE,
        user_message=user_message,
        context=context,
        tool_outcomes=outcomes,
        step_count=step_count,
        internal_conversation=format_internal_conversation(conversation),
    )


def build_synthesis_prompt(
    user_message: str,
    chat_history: Sequence[ChatHistoryEntry],
    tool_calls: Sequence[ToolExecution],
) -> str:
    summary = "\n".join(
        f"### {call.tool}\n{summarize_data(call.result.data, SYNTHESIS_PAYLOAD_LIMIT)}"
        for call in tool_calls
        if call.result.success
    )
    failed = "\n".join(
        f"- {call.tool}: {call.result.error or call.result.message or 'unknown error'}"
        for call in tool_calls
        if not call.result.success
    )
    return PromptBuilder.render(
        PromptBuilder.SYNTHESIS_TEMPLATE,
        user_message=user_message,
        tool_summary=summary,
        failed_tools=failed,
        chat_history=format_chat_history(chat_history),
    )


def build_validation_prompt(user_message: str, draft: str) -> str:
    return PromptBuilder.render(PromptBuilder.VALIDATION_TEMPLATE, user_message=user_message, draft=draft)


def build_refinement_prompt(
    user_message: str,
    chat_history: Sequence[ChatHistoryEntry],
    tool_calls: Sequence[ToolExecution],
    draft: str,
    feedback: str,
) -> str:
    return PromptBuilder.render(
        PromptBuilder.REFINEMENT_TEMPLATE,
        user_message=user_message,
        feedback=feedback,
        draft=draft,
        tool_digest=tool_outcome_digest(tool_calls),
        chat_history=format_chat_history(chat_history),
    )
