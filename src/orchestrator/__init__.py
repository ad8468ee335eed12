"""Status-transition orchestrator and its webhook dispatch outbox."""

from src.orchestrator.dispatch import list_dispatches, retry_dispatch, send_dispatch
from src.orchestrator.service import ProductNotFoundError, ProductWriteConflictError, handle_change_event
from src.orchestrator.transitions import TransitionPlan, plan_transition

__all__ = [
    "ProductNotFoundError",
    "ProductWriteConflictError",
    "TransitionPlan",
    "handle_change_event",
    "list_dispatches",
    "plan_transition",
    "retry_dispatch",
    "send_dispatch",
]
