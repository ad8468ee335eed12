"""n8n execution management."""

from src.executions.actions import ExecutionAction, UnknownExecutionAction, manage_execution, parse_action

__all__ = [
    "ExecutionAction",
    "UnknownExecutionAction",
    "manage_execution",
    "parse_action",
]
