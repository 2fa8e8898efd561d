"""Graph nodes exports."""

from .analysis import build_analysis_node, perform_analysis
from .evaluate import build_evaluate_node, evaluate_progress
from .executor import build_execute_node, execute_tool_call
from .planner import build_plan_node, decide_tool_usage, fallback_tool_calls
from .synthesize import build_synthesize_node, synthesize_final_response
from .validate import build_refine_node, build_validate_node, refine_synthesis, validate_response_format

__all__ = [
    "build_analysis_node",
    "build_plan_node",
    "build_execute_node",
    "build_evaluate_node",
    "build_synthesize_node",
    "build_validate_node",
    "build_refine_node",
    "perform_analysis",
    "decide_tool_usage",
    "fallback_tool_calls",
    "execute_tool_call",
    "evaluate_progress",
    "synthesize_final_response",
    "validate_response_format",
    "refine_synthesis",
]
