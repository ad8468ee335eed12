"""Dashboard-facing trigger proxies and automation run endpoints."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from src.automations import runs
from src.automations.proxy import (
    BANNER_PROXY,
    REVIEWS_PROXY,
    SHOPIFY_PROXY,
    UGC_SCRIPTS_PROXY,
    ProxyDefinition,
    trigger_automation,
)
from src.core.config import Settings, get_settings
from src.core.logger import bind_product_context, get_logger
from src.core.observability import capture_exception
from src.integrations.n8n.client import N8nClient, get_n8n_client
from src.schemas.automations import AutomationRunItem, AutomationRunListResponse, AutomationRunUpdateRequest
from src.storage.db import get_session


router = APIRouter(tags=["automations"])
logger = get_logger("launchpad.automations")


def _run_proxy(
    definition: ProxyDefinition,
    body: Dict[str, Any],
    session: Session,
    client: N8nClient,
    settings: Settings,
) -> JSONResponse:
    bind_product_context(str(body.get("id") or "") or None)
    try:
        result = trigger_automation(
            session,
            definition,
            body,
            client=client,
            trigger_source=settings.trigger_source,
        )
    except Exception as exc:
        logger.exception("proxy_trigger_crashed", automation=definition.automation)
        capture_exception(exc)
        return JSONResponse(
            status_code=500,
            content={"error": f"Failed to trigger {definition.label}", "message": str(exc)},
        )
    return result.to_response()


@router.post("/api/trigger-banners")
def trigger_banners(
    body: Optional[Dict[str, Any]] = Body(default=None),
    session: Session = Depends(get_session),
    client: N8nClient = Depends(get_n8n_client),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    return _run_proxy(BANNER_PROXY, body or {}, session, client, settings)


@router.post("/api/trigger-reviews")
def trigger_reviews(
    body: Optional[Dict[str, Any]] = Body(default=None),
    session: Session = Depends(get_session),
    client: N8nClient = Depends(get_n8n_client),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    return _run_proxy(REVIEWS_PROXY, body or {}, session, client, settings)


@router.post("/api/trigger-ugc")
def trigger_ugc(
    body: Optional[Dict[str, Any]] = Body(default=None),
    session: Session = Depends(get_session),
    client: N8nClient = Depends(get_n8n_client),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    return _run_proxy(UGC_SCRIPTS_PROXY, body or {}, session, client, settings)


@router.post("/api/trigger-shopify")
def trigger_shopify(
    body: Optional[Dict[str, Any]] = Body(default=None),
    session: Session = Depends(get_session),
    client: N8nClient = Depends(get_n8n_client),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    return _run_proxy(SHOPIFY_PROXY, body or {}, session, client, settings)


@router.get("/automation-runs/{product_id}", response_model=AutomationRunListResponse)
def list_automation_runs(
    product_id: str,
    session: Session = Depends(get_session),
) -> AutomationRunListResponse:
    items = runs.list_runs(session, product_id=product_id)
    return AutomationRunListResponse(
        product_id=product_id,
        items=[AutomationRunItem.model_validate(item) for item in items],
    )


@router.patch("/automation-runs/{product_id}/{automation_type}", response_model=AutomationRunItem)
def update_automation_run(
    product_id: str,
    automation_type: str,
    payload: AutomationRunUpdateRequest,
    session: Session = Depends(get_session),
) -> AutomationRunItem:
    try:
        run = runs.update_run_progress(
            session,
            product_id=product_id,
            automation_type=automation_type,
            status=payload.status,
            progress=payload.progress,
            message=payload.message,
            execution_id=payload.execution_id,
        )
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return AutomationRunItem.model_validate(run)
