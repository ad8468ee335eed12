"""Execution management endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from src.core.config import Settings, get_settings
from src.core.logger import get_logger
from src.core.observability import capture_exception
from src.executions.actions import manage_execution
from src.integrations.n8n.client import N8nClient, get_n8n_client
from src.schemas.executions import ExecutionRequest
from src.storage.db import get_session


router = APIRouter(tags=["executions"])
logger = get_logger("launchpad.executions")


@router.post("/api/manage-execution")
def manage_execution_endpoint(
    payload: ExecutionRequest,
    session: Session = Depends(get_session),
    client: N8nClient = Depends(get_n8n_client),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    try:
        result = manage_execution(
            session,
            payload,
            client=client,
            resume_trigger_source=settings.resume_trigger_source,
        )
    except Exception as exc:
        logger.exception("execution_action_crashed", action=payload.action)
        capture_exception(exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to manage execution", "message": str(exc)},
        )
    return result.to_response()
