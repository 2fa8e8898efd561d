"""Factory for assembling the orchestration state machine."""

from __future__ import annotations

from langgraph.graph import END, START, StateGraph

from toolorchestrator.graph.context import OrchestratorContext
from toolorchestrator.graph.nodes import (
    build_analysis_node,
    build_evaluate_node,
    build_execute_node,
    build_plan_node,
    build_refine_node,
    build_synthesize_node,
    build_validate_node,
)
from toolorchestrator.graph.routing import (
    MAX_VALIDATION_ROUNDS,
    analysis_route,
    evaluate_route,
    execute_route,
    plan_route,
    refine_route,
    validate_route,
)
from toolorchestrator.graph.state import OrchestrationRequest, OrchestrationState


def recursion_limit(max_steps: int, max_tool_calls: int) -> int:
    """Upper bound on node visits for one run.

    Every loop visit except tool execution appends a step, so ``max_steps``
    bounds plan and evaluate visits; execution is bounded by the tool budget.
    The overshoot covers the final round, forced retries and validation.
    """
    return 3 * max_steps + max_tool_calls + 2 * MAX_VALIDATION_ROUNDS + 16


def build_state_graph(*, ctx: OrchestratorContext, request: OrchestrationRequest):
    """Compose the orchestration graph for one call.

        START → analysis ──budget──→ synthesize
                     ↓
                    plan ⇄ (forced retry)
                     ↓
                  execute ⟲ (one call per visit)
                     ↓
                  evaluate ──continue──→ plan
                     ↓ complete / budget
                synthesize → validate ──accepted──→ END
                                ↑  ↓ rejected
                                refine ──cap──→ END
    """

    # ========== Build nodes ==========
    graph = StateGraph(OrchestrationState)

    graph.add_node("analysis", build_analysis_node(ctx=ctx, request=request))
    graph.add_node("plan", build_plan_node(ctx=ctx, request=request))
    graph.add_node("execute", build_execute_node(ctx=ctx, request=request))
    graph.add_node("evaluate", build_evaluate_node(ctx=ctx, request=request))
    graph.add_node("synthesize", build_synthesize_node(ctx=ctx, request=request))
    graph.add_node("validate", build_validate_node(ctx=ctx, request=request))
    graph.add_node("refine", build_refine_node(ctx=ctx, request=request))

    # ========== Tool loop ==========
    graph.add_edge(START, "analysis")
    graph.add_conditional_edges(
        "analysis",
        analysis_route,
        {
            "plan": "plan",
            "synthesize": "synthesize",  # Budgets leave no room for a round
        },
    )
    graph.add_conditional_edges(
        "plan",
        plan_route,
        {
            "plan": "plan",          # Forced retry
            "execute": "execute",
            "evaluate": "evaluate",
        },
    )
    graph.add_conditional_edges(
        "execute",
        execute_route,
        {
            "execute": "execute",    # Next pending call
            "evaluate": "evaluate",
        },
    )
    graph.add_conditional_edges(
        "evaluate",
        evaluate_route,
        {
            "plan": "plan",
            "synthesize": "synthesize",
        },
    )

    # ========== Synthesis and validation ==========
    graph.add_edge("synthesize", "validate")
    graph.add_conditional_edges("validate", validate_route, {"refine": "refine", "end": END})
    graph.add_conditional_edges("refine", refine_route, {"validate": "validate", "end": END})

    return graph.compile()
