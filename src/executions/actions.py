"""Execution management: stop, inspect, resume and list n8n executions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from src.automations import runs
from src.automations.catalog import AUTOMATION_RESUME, get_automation_target
from src.core.logger import get_logger
from src.core.metrics import record_execution_action
from src.core.responses import HandlerResult, error_result
from src.integrations.n8n.client import N8nClient, N8nError
from src.schemas.executions import ExecutionRequest


logger = get_logger("launchpad.executions")

STOP_WARNING = "n8n stop may not have fully succeeded"


class ExecutionAction(str, Enum):
    STOP = "stop"
    STATUS = "status"
    RESUME = "resume"
    LIST_RUNNING = "list-running"


class UnknownExecutionAction(ValueError):
    def __init__(self, action: str) -> None:
        super().__init__(f"Unknown action: {action}")
        self.action = action


@dataclass(frozen=True)
class ExecutionContext:
    session: Session
    client: N8nClient
    request: ExecutionRequest
    resume_trigger_source: str
    now: datetime


Handler = Callable[[ExecutionContext], HandlerResult]


def parse_action(raw: str) -> ExecutionAction:
    try:
        return ExecutionAction(raw)
    except ValueError as exc:
        raise UnknownExecutionAction(raw) from exc


def _mark_local_run_stopped(context: ExecutionContext) -> None:
    request = context.request
    if not request.product_id or not request.automation_type:
        return
    runs.mark_run(
        context.session,
        product_id=request.product_id,
        automation_type=request.automation_type,
        status=runs.RUN_STATUS_STOPPED,
        message="Stopped by user",
    )


def handle_stop(context: ExecutionContext) -> HandlerResult:
    execution_id = context.request.execution_ref
    if execution_id is None:
        return error_result(400, "Missing executionId for stop action")

    # The caller marks local state as stopped whatever n8n answers.
    _mark_local_run_stopped(context)

    try:
        response = context.client.stop_execution(execution_id)
    except N8nError as exc:
        logger.warning("execution_stop_unreachable", execution_id=execution_id, error=str(exc))
        response = None

    if response is None or not response.ok:
        if response is not None:
            logger.warning(
                "execution_stop_failed",
                execution_id=execution_id,
                status_code=response.status_code,
                detail=response.text[:200],
            )
        record_execution_action(action=ExecutionAction.STOP.value, outcome="soft_failure")
        return HandlerResult(
            status_code=200,
            content={
                "success": True,
                "message": "Execution stop requested",
                "warning": STOP_WARNING,
                "executionId": execution_id,
            },
        )

    record_execution_action(action=ExecutionAction.STOP.value, outcome="ok")
    data = response.body if isinstance(response.body, dict) else {}
    return HandlerResult(
        status_code=200,
        content={
            "success": True,
            "message": "Execution stopped",
            "executionId": execution_id,
            "data": data,
        },
    )


def handle_status(context: ExecutionContext) -> HandlerResult:
    execution_id = context.request.execution_ref
    if execution_id is None:
        return error_result(400, "Missing executionId for status action")

    response = context.client.get_execution(execution_id)
    if not response.ok:
        record_execution_action(action=ExecutionAction.STATUS.value, outcome="failed")
        return error_result(response.status_code, "Failed to get execution status", details=response.text)

    record_execution_action(action=ExecutionAction.STATUS.value, outcome="ok")
    return HandlerResult(status_code=200, content={"success": True, "execution": response.body})


def handle_resume(context: ExecutionContext) -> HandlerResult:
    """Re-trigger generation with checkpoint context; n8n has no true resume primitive."""

    request = context.request
    if request.product is None or not request.product_id:
        return error_result(400, "Missing product data for resume action")

    payload: Dict[str, Any] = {"product_id": request.product_id}
    payload.update(request.product)
    payload.update(
        {
            "resume_from_checkpoint": True,
            "triggered_at": context.now.isoformat(),
            "trigger_source": context.resume_trigger_source,
        }
    )

    target = get_automation_target(AUTOMATION_RESUME)
    response = context.client.trigger(target, payload)
    if not response.ok:
        record_execution_action(action=ExecutionAction.RESUME.value, outcome="failed")
        return error_result(response.status_code, "Failed to resume execution", details=response.body)

    record_execution_action(action=ExecutionAction.RESUME.value, outcome="ok")
    return HandlerResult(
        status_code=200,
        content={
            "success": True,
            "message": "Execution resumed",
            "productId": request.product_id,
            "data": response.body,
        },
    )


def handle_list_running(context: ExecutionContext) -> HandlerResult:
    response = context.client.list_executions(status="running", limit=50)
    if not response.ok:
        record_execution_action(action=ExecutionAction.LIST_RUNNING.value, outcome="failed")
        return error_result(response.status_code, "Failed to list executions", details=response.text)

    record_execution_action(action=ExecutionAction.LIST_RUNNING.value, outcome="ok")
    return HandlerResult(status_code=200, content={"success": True, "executions": response.body})


_HANDLER_MAP: Dict[ExecutionAction, Handler] = {
    ExecutionAction.STOP: handle_stop,
    ExecutionAction.STATUS: handle_status,
    ExecutionAction.RESUME: handle_resume,
    ExecutionAction.LIST_RUNNING: handle_list_running,
}


def manage_execution(
    session: Session,
    request: ExecutionRequest,
    *,
    client: N8nClient,
    resume_trigger_source: str,
    now: Optional[datetime] = None,
) -> HandlerResult:
    if not request.action:
        return error_result(400, "Missing action parameter")

    try:
        action = parse_action(request.action)
    except UnknownExecutionAction as exc:
        return error_result(400, str(exc))

    context = ExecutionContext(
        session=session,
        client=client,
        request=request,
        resume_trigger_source=resume_trigger_source,
        now=now or datetime.now(timezone.utc),
    )
    logger.info("execution_action_requested", action=action.value, execution_id=request.execution_ref)
    return _HANDLER_MAP[action](context)
