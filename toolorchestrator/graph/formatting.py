"""Text helpers shared by the stage prompts."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from toolorchestrator.models.provider import ImageInput
from toolorchestrator.tools.registry import ToolRegistry

from .schema import AttachedFile, ChatHistoryEntry, InternalTurn, ToolExecution

CALENDAR_LIST_TOOL = "get_events"
KNOWLEDGE_SEARCH_TOOL = "vector_file_search"
VECTOR_STORE_IDS_PARAM = "vector_store_ids"

EVALUATION_PAYLOAD_LIMIT = 400
SYNTHESIS_PAYLOAD_LIMIT = 800

GENERIC_PARAMETER_HINT = "See tool schema for detailed parameters"

_CALENDAR_QUERY_RE = re.compile(r"calendar|meeting|event|schedule|appointment", re.IGNORECASE)

# Hints for tools whose argument schema is too loose to guide the model on its own
_PARAMETER_HINTS: Dict[str, str] = {
    # calendar
    "get_events": '{ time_range?: { start?: string (ISO), end?: string (ISO) }, filters?: { query?: string, max_results?: number, show_deleted?: boolean, order_by?: "start_time" | "updated" } }',
    "search_events": "{ query: string (required), time_range?: { start?: string (ISO), end?: string (ISO) } }",
    "create_event": "{ event_data: { summary: string (required), description?: string, start: { date_time?: string (ISO) | date?: string (YYYY-MM-DD) }, end: { date_time?: string (ISO) | date?: string (YYYY-MM-DD) }, location?: string, attendees?: [{ email: string, display_name?: string }] } }",
    "update_event": "{ event_id: string (required), changes: partial event_data }",
    "delete_event": "{ event_id: string (required) }",
    # email
    "send_email": '{ email_data: { to: string[] (required), cc?: string[], bcc?: string[], subject: string (required), body: string (required), priority?: "low" | "normal" | "high", is_html?: boolean } }',
    "search_emails": "{ filters: { from?: string, to?: string, subject?: string, body?: string, has_attachment?: boolean, is_read?: boolean, date_range?: { start?: string, end?: string }, max_results?: number } }",
    "reply_to_email": "{ email_id: string (required), reply_data: { body: string (required), reply_all?: boolean } }",
    # file
    "list_files": "{ directory_path: string (required), recursive?: boolean }",
    "read_file": "{ file_path: string (required) }",
    "write_file": "{ file_path: string (required), content: string (required), overwrite?: boolean }",
    "search_files": '{ search_path: string (required), filters: { name?: string, extension?: string, type?: "file" | "directory", size_min?: number, size_max?: number, max_results?: number } }',
    # web
    "search_web": "{ query: string (required), filters?: { site?: string, max_results?: number } }",
    "get_web_page_content": "{ url: string (required) }",
    "summarize_web_page": "{ url: string (required), max_length?: number }",
    "check_website": "{ url: string (required) }",
    # passport
    "create_passport": "{ passport_number: string, surname: string, given_names: string, nationality: string, date_of_birth: string (YYYY-MM-DD), sex: string, place_of_birth: string, date_of_issue: string, date_of_expiry: string, issuing_authority: string, holder_signature_present: boolean, type: string, residence?: string, height_cm?: number, eye_color?: string }",
    "get_passports": "{ passport_number?: string, surname?: string, given_names?: string }",
    "update_passport": "{ id: number (required), ...fields to update }",
    "delete_passport": "{ id: number (required) }",
    "setup_passport_schema": "{}",
}


def tool_attr(tool: Any, key: str, default: Any = None) -> Any:
    """Read ``key`` from a descriptor object or a plain mapping."""
    if isinstance(tool, Mapping):
        return tool.get(key, default)
    return getattr(tool, key, default)


def has_tool(registry: ToolRegistry, name: str) -> bool:
    return any(tool_attr(tool, "name") == name for tool in registry.get_available_tools())


def is_calendar_query(message: str) -> bool:
    return _CALENDAR_QUERY_RE.search(message or "") is not None


def get_tool_parameter_info(
    tool_name: str,
    vector_store_ids: Sequence[str] = (),
    schema: Optional[Mapping[str, Any]] = None,
) -> str:
    """Describe the parameters the model should pass to ``tool_name``.

    Well-known tools get a curated hint. Others fall back to their own argument
    schema, then to a generic pointer.
    """
    if tool_name == KNOWLEDGE_SEARCH_TOOL:
        ids = ", ".join(f'"{store_id}"' for store_id in vector_store_ids)
        return f"{{ query: string (required), max_results?: number, {VECTOR_STORE_IDS_PARAM}: [{ids}] (required) }}"
    if tool_name in _PARAMETER_HINTS:
        return _PARAMETER_HINTS[tool_name]
    if schema:
        return ", ".join(f"{name}: {_schema_type(spec)}" for name, spec in schema.items())
    return GENERIC_PARAMETER_HINT


def _schema_type(spec: Any) -> str:
    if isinstance(spec, Mapping):
        return str(spec.get("type") or spec.get("title") or "any")
    return "any"


def tool_catalog(registry: ToolRegistry, vector_store_ids: Sequence[str] = ()) -> str:
    """Render every registered tool grouped by category with parameter hints."""
    sections: List[str] = []
    for category in registry.get_available_categories():
        lines = []
        for tool in registry.get_tools_by_category(category):
            name = tool_attr(tool, "name", "")
            hint = get_tool_parameter_info(name, vector_store_ids, tool_attr(tool, "parameters"))
            lines.append(f"  - {name}: {tool_attr(tool, 'description', '')}\n    Parameters: {hint}")
        sections.append(f"**{category.upper()}**:\n" + "\n".join(lines))
    return "\n\n".join(sections)


def format_chat_history(history: Iterable[ChatHistoryEntry]) -> str:
    return "\n".join(
        f"- [{entry.timestamp.isoformat()}] {entry.type.upper()}: {entry.content}" for entry in history
    )


def format_internal_conversation(conversation: Sequence[InternalTurn]) -> str:
    if not conversation:
        return ""
    lines = [f"{turn.role.upper()}: {turn.content}" for turn in conversation]
    return "\n**INTERNAL CONVERSATION**\n" + "\n".join(lines)


def format_attachment_summary(files: Sequence[AttachedFile]) -> str:
    return "\n".join(
        f"- {f.file_name} ({f.file_size} bytes, {'image' if f.is_image else 'file'})" for f in files
    )


def render_payload(data: Any) -> str:
    """Render a tool payload: structured data as indented JSON, scalars as text."""
    if isinstance(data, (dict, list)):
        return json.dumps(data, indent=2, ensure_ascii=False, default=str)
    return "" if data is None else str(data)


def summarize_data(data: Any, limit: int) -> str:
    return render_payload(data)[:limit]


def build_updated_context(user_message: str, tool_calls: Sequence[ToolExecution]) -> str:
    """Rebuild the running context from the request and every tool outcome so far."""
    parts = [f"USER:\n{user_message}"]
    for call in tool_calls:
        success = "true" if call.result.success else "false"
        parts.append(f"\n---\nTool: {call.tool}\nSuccess: {success}\nResult: {render_payload(call.result.data)}")
    return "".join(parts)


def tool_outcome_digest(tool_calls: Sequence[ToolExecution]) -> str:
    return "\n".join(f"- {call.tool}: {'OK' if call.result.success else 'FAIL'}" for call in tool_calls)


def images_from_files(files: Sequence[AttachedFile]) -> List[ImageInput]:
    """Image attachments that already carry a data URL, ready for a multimodal call."""
    return [
        ImageInput(image_data=f.image_data_url, mime_type=f.file_type or "image/png")
        for f in files
        if f.is_image and f.image_data_url
    ]
