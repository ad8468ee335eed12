"""Database-webhook endpoint for the status orchestrator and its outbox."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from src.core.config import Settings, get_settings
from src.core.logger import get_logger
from src.core.observability import capture_exception
from src.integrations.n8n.client import N8nClient, get_n8n_client
from src.orchestrator.dispatch import list_dispatches, retry_dispatch
from src.orchestrator.service import handle_change_event
from src.schemas.orchestrator import ChangeEvent, DispatchItem, DispatchListResponse
from src.storage.db import get_session


router = APIRouter(tags=["orchestrator"])
logger = get_logger("launchpad.orchestrator")


@router.post("/functions/workflow-orchestrator")
def workflow_orchestrator(
    event: ChangeEvent,
    session: Session = Depends(get_session),
    client: N8nClient = Depends(get_n8n_client),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    try:
        result = handle_change_event(
            session,
            event,
            client=client,
            mode=settings.orchestrator_mode.strip().lower(),
            max_write_attempts=settings.orchestrator_max_write_attempts,
        )
    except Exception as exc:
        session.rollback()
        logger.exception("orchestrator_crashed", event_type=event.type)
        capture_exception(exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})
    return result.to_response()


@router.get("/dispatches", response_model=DispatchListResponse)
def get_dispatches(
    product_id: Optional[str] = None,
    dispatch_status: Optional[str] = Query(default=None, alias="status"),
    limit: int = 50,
    session: Session = Depends(get_session),
) -> DispatchListResponse:
    items = list_dispatches(session, product_id=product_id, status=dispatch_status, limit=limit)
    return DispatchListResponse(items=[DispatchItem.model_validate(item) for item in items])


@router.post("/dispatches/{dispatch_id}/retry", response_model=DispatchItem)
def retry_dispatch_endpoint(
    dispatch_id: str,
    session: Session = Depends(get_session),
    client: N8nClient = Depends(get_n8n_client),
) -> DispatchItem:
    try:
        dispatch = retry_dispatch(session, dispatch_id=dispatch_id, client=client)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return DispatchItem.model_validate(dispatch)
