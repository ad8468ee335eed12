"""Outbox of orchestrator webhook triggers.

A dispatch row is committed before the request goes out and updated with the
outcome afterwards, so a dropped trigger stays visible and can be re-sent.
Delivery failures never raise out of :func:`send_dispatch`.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from src.automations.catalog import get_automation_target
from src.core.logger import get_logger
from src.core.metrics import record_webhook_trigger
from src.integrations.n8n.client import N8nClient, N8nError
from src.storage.models import WebhookDispatch


logger = get_logger("launchpad.orchestrator.dispatch")

DISPATCH_STATUS_PENDING = "pending"
DISPATCH_STATUS_DELIVERED = "delivered"
DISPATCH_STATUS_FAILED = "failed"


def _json_dumps(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=True, sort_keys=True)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def create_dispatch(
    session: Session,
    *,
    client: N8nClient,
    product_id: str,
    automation: str,
    payload: Dict[str, Any],
) -> WebhookDispatch:
    target = get_automation_target(automation)
    dispatch = WebhookDispatch(
        product_id=product_id,
        automation=automation,
        transport=target.transport,
        target_url=client.target_url(target),
        payload_json=_json_dumps(payload),
        status=DISPATCH_STATUS_PENDING,
        attempts=0,
    )
    session.add(dispatch)
    session.commit()
    return dispatch


def send_dispatch(session: Session, dispatch: WebhookDispatch, *, client: N8nClient) -> WebhookDispatch:
    payload = json.loads(dispatch.payload_json or "{}")

    dispatch.attempts += 1
    dispatch.attempted_at = _now_utc()
    try:
        response = client.deliver(transport=dispatch.transport, url=dispatch.target_url, payload=payload)
    except Exception as exc:
        dispatch.status = DISPATCH_STATUS_FAILED
        dispatch.last_status_code = None
        dispatch.last_error = str(exc)[:255] or type(exc).__name__
        logger.warning(
            "webhook_trigger_failed",
            automation=dispatch.automation,
            dispatch_id=dispatch.id,
            error=dispatch.last_error,
            error_type=type(exc).__name__,
            n8n_error=isinstance(exc, N8nError),
        )
        record_webhook_trigger(automation=dispatch.automation, outcome="error")
        session.commit()
        return dispatch

    dispatch.last_status_code = response.status_code
    if response.ok:
        dispatch.status = DISPATCH_STATUS_DELIVERED
        dispatch.last_error = None
        logger.info(
            "webhook_trigger_delivered",
            automation=dispatch.automation,
            dispatch_id=dispatch.id,
            status_code=response.status_code,
        )
        record_webhook_trigger(automation=dispatch.automation, outcome="delivered")
    else:
        dispatch.status = DISPATCH_STATUS_FAILED
        dispatch.last_error = response.text.strip()[:255] or f"status={response.status_code}"
        logger.warning(
            "webhook_trigger_failed",
            automation=dispatch.automation,
            dispatch_id=dispatch.id,
            status_code=response.status_code,
        )
        record_webhook_trigger(automation=dispatch.automation, outcome="failed")
    session.commit()
    return dispatch


def get_dispatch(session: Session, *, dispatch_id: str) -> Optional[WebhookDispatch]:
    return session.scalar(select(WebhookDispatch).where(WebhookDispatch.id == dispatch_id))


def list_dispatches(
    session: Session,
    *,
    product_id: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 50,
) -> List[WebhookDispatch]:
    query = select(WebhookDispatch)
    if product_id:
        query = query.where(WebhookDispatch.product_id == product_id)
    if status:
        query = query.where(WebhookDispatch.status == status)
    query = query.order_by(desc(WebhookDispatch.created_at)).limit(max(1, min(limit, 200)))
    return list(session.scalars(query).all())


def retry_dispatch(session: Session, *, dispatch_id: str, client: N8nClient) -> WebhookDispatch:
    dispatch = get_dispatch(session, dispatch_id=dispatch_id)
    if dispatch is None:
        raise LookupError("Dispatch not found")
    if dispatch.status == DISPATCH_STATUS_DELIVERED:
        raise ValueError("Dispatch already delivered")
    logger.info("webhook_dispatch_retry", dispatch_id=dispatch.id, attempts=dispatch.attempts)
    return send_dispatch(session, dispatch, client=client)
