"""Logging utilities for the tool orchestrator."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "toolorchestrator"


def setup_logging(level: int = logging.INFO, log_dir: Optional[Path] = None) -> logging.Logger:
    """Setup logging configuration for the orchestrator.

    Args:
        level: Console logging level (default: INFO)
        log_dir: Directory for the detailed log file; no file handler when None

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)  # Capture all child logs
    logger.propagate = False

    # Clear existing handlers
    logger.handlers = []

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"toolorchestrator_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        logger.addHandler(file_handler)

    # Console handler (user-friendly)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(max(level, logging.WARNING))
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console_handler)

    logger.info("=" * 80)
    logger.info("Tool orchestrator logging initialised")
    if log_dir is not None:
        logger.info(f"Log directory: {log_dir}")
    logger.info("=" * 80)

    return logger


def log_tool_call(logger: logging.Logger, tool_name: str, args: Dict[str, Any]) -> None:
    """Log tool invocation.

    Args:
        logger: Logger instance
        tool_name: Name of the tool being called
        args: Tool arguments
    """
    logger.info(f"Tool call: {tool_name}")
    logger.debug(f"  Arguments: {json.dumps(args, ensure_ascii=False, indent=2, default=str)}")


def log_tool_result(logger: logging.Logger, tool_name: str, result: Any, success: bool = True, duration_ms: float = 0.0) -> None:
    """Log tool execution result.

    Args:
        logger: Logger instance
        tool_name: Name of the tool
        result: Tool execution result
        success: Whether the tool executed successfully
        duration_ms: Wall-clock duration of the call
    """
    status = "✓ Success" if success else "✗ Failed"
    logger.info(f"Tool result: {tool_name} - {status} ({duration_ms:.0f}ms)")

    result_str = str(result)
    if len(result_str) > 500:
        result_str = result_str[:500] + "... (truncated)"
    logger.debug(f"  Result: {result_str}")


def log_model_selection(logger: logging.Logger, stage: str, model_id: str, provider: str) -> None:
    """Log which provider a stage call was routed to."""
    logger.info(f"Model selected for {stage}: {model_id} via {provider}")


def log_error(logger: logging.Logger, error: Exception, context: str = "") -> None:
    """Log error with context.

    Args:
        logger: Logger instance
        error: Exception instance
        context: Additional context about where the error occurred
    """
    logger.error(f"Error occurred: {type(error).__name__}: {str(error)}")
    if context:
        logger.error(f"  Context: {context}")
    logger.debug("Full traceback:", exc_info=error)


def log_prompt(logger: logging.Logger, stage: str, prompt: str, max_length: int = 500) -> None:
    """Log the prompt sent for a stage, truncated to ``max_length`` characters."""
    preview = prompt if len(prompt) <= max_length else prompt[:max_length] + "... (truncated)"
    logger.debug(f"\n{'='*80}")
    logger.debug(f"Prompt for {stage} ({len(prompt)} chars):")
    logger.debug(preview)
    logger.debug(f"{'='*80}\n")


def log_routing_decision(logger: logging.Logger, from_node: str, decision: str, reason: str = "") -> None:
    """Log routing decision.

    Args:
        logger: Logger instance
        from_node: Source node making the decision
        decision: Routing destination
        reason: Reason for the routing decision
    """
    logger.info(f"Routing decision from {from_node}: → {decision}")
    if reason:
        logger.info(f"  → Reason: {reason}")


def log_node_entry(logger: logging.Logger, node_name: str, state: Dict[str, Any]) -> None:
    """Log node entry with a compact state snapshot."""
    logger.info(f"\n{'#'*80}")
    logger.info(f"# ENTERING NODE: {node_name}")
    logger.info(f"{'#'*80}")
    logger.info("State snapshot:")
    logger.info(f"  - steps: {len(state.get('steps', []))}")
    logger.info(f"  - tool_calls: {state.get('tool_count', 0)}")
    logger.info(f"  - pending_calls: {len(state.get('pending_calls', []))}")
    logger.info(f"  - validation_rounds: {state.get('validation_rounds', 0)}")


def log_node_exit(logger: logging.Logger, node_name: str, updates: Dict[str, Any]) -> None:
    """Log node exit with state updates.

    Args:
        logger: Logger instance
        node_name: Name of the node being exited
        updates: State updates returned by the node
    """
    logger.info(f"# EXITING NODE: {node_name}")
    for key, value in updates.items():
        if key in {"steps", "tool_calls", "conversation", "pending_calls"}:
            logger.info(f"  - {key}: +{len(value)} entries")
        elif key in {"running_context", "answer", "feedback"}:
            logger.info(f"  - {key}: {len(value)} chars")
        else:
            logger.info(f"  - {key}: {value}")
