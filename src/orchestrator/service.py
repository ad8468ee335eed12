"""Status-transition orchestrator.

Consumes a products change event, advances ``status`` for the two actionable
statuses and fans out webhook triggers. The status write is committed before
any trigger is sent and is never rolled back when a trigger fails: the row
says which stage is intended, the dispatch outbox says what was delivered.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import json
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from src.core.logger import bind_product_context, get_logger
from src.core.metrics import record_status_transition
from src.core.responses import HandlerResult, error_result
from src.integrations.n8n.client import N8nClient
from src.orchestrator.dispatch import DISPATCH_STATUS_DELIVERED, create_dispatch, send_dispatch
from src.orchestrator.payloads import PAYLOAD_BUILDERS
from src.orchestrator.transitions import (
    EVENT_DELETE,
    MODE_FULL,
    TransitionPlan,
    is_status_unchanged,
    notification_title,
    plan_transition,
)
from src.schemas.orchestrator import ChangeEvent
from src.storage.models import Notification, Product


logger = get_logger("launchpad.orchestrator")

NOTIFICATION_TYPE_PRODUCT_STATUS = "product_status"


class ProductNotFoundError(LookupError):
    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product not found: {product_id}")
        self.product_id = product_id


class ProductWriteConflictError(RuntimeError):
    def __init__(self, product_id: str, attempts: int) -> None:
        super().__init__(f"Product {product_id} kept changing during {attempts} write attempts")
        self.product_id = product_id
        self.attempts = attempts


@dataclass(frozen=True)
class TriggerOutcome:
    automation: str
    delivered: bool
    dispatch_id: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {"automation": self.automation, "delivered": self.delivered, "dispatch_id": self.dispatch_id}


def product_snapshot(product: Product) -> Dict[str, Any]:
    return {
        "id": product.id,
        "user_id": product.user_id,
        "name": product.name,
        "description": product.description,
        "status": product.status,
        "niche": product.niche,
        "country": product.country,
        "language": product.language,
        "gender": product.gender,
        "product_image_url": product.product_image_url,
        "amazon_link": product.amazon_link,
        "competitor_link_1": product.competitor_link_1,
        "competitor_link_2": product.competitor_link_2,
        "aliexpress_link": product.aliexpress_link,
        "supplier_url": product.supplier_url,
        "metadata": dict(product.metadata_json or {}),
    }


def apply_transition(
    session: Session,
    *,
    product_id: str,
    plan: TransitionPlan,
    max_attempts: int,
) -> Tuple[Product, bool]:
    """Compare-and-set the status, re-merging metadata from the latest row.

    Returns ``(product, applied)``; ``applied`` is False when the row already
    left ``plan.from_status`` (a redelivered or overtaken event).
    """

    for attempt in range(1, max_attempts + 1):
        product = session.get(Product, product_id, populate_existing=True)
        if product is None:
            raise ProductNotFoundError(product_id)
        if product.status != plan.from_status:
            return product, False

        merged = dict(product.metadata_json or {})
        merged.update(plan.metadata_updates)
        product.status = plan.to_status
        product.metadata_json = merged
        product.updated_at = datetime.now(timezone.utc)
        try:
            session.commit()
            return product, True
        except StaleDataError:
            session.rollback()
            logger.warning("orchestrator_write_conflict", attempt=attempt, max_attempts=max_attempts)

    raise ProductWriteConflictError(product_id, max_attempts)


def _fan_out(
    session: Session,
    *,
    client: N8nClient,
    product_id: str,
    record: Dict[str, Any],
    triggers: Tuple[str, ...],
) -> List[TriggerOutcome]:
    outcomes: List[TriggerOutcome] = []
    for automation in triggers:
        payload = PAYLOAD_BUILDERS[automation](record)
        try:
            dispatch = create_dispatch(
                session,
                client=client,
                product_id=product_id,
                automation=automation,
                payload=payload,
            )
            dispatch = send_dispatch(session, dispatch, client=client)
        except Exception:
            session.rollback()
            logger.exception("webhook_dispatch_unrecorded", automation=automation)
            outcomes.append(TriggerOutcome(automation=automation, delivered=False))
            continue
        outcomes.append(
            TriggerOutcome(
                automation=automation,
                delivered=dispatch.status == DISPATCH_STATUS_DELIVERED,
                dispatch_id=dispatch.id,
            )
        )
    return outcomes


def _notify(session: Session, record: Dict[str, Any], title: str) -> None:
    status = record.get("status")
    session.add(
        Notification(
            user_id=record.get("user_id"),
            type=NOTIFICATION_TYPE_PRODUCT_STATUS,
            title=title,
            message=f"{record.get('name')} - {status}",
            data_json=json.dumps({"product_id": record.get("id"), "status": status}, separators=(",", ":")),
            read=False,
        )
    )
    session.commit()
    logger.info("product_status_notification", status=status)


def handle_change_event(
    session: Session,
    event: ChangeEvent,
    *,
    client: N8nClient,
    mode: str = MODE_FULL,
    max_write_attempts: int = 3,
    now: Optional[datetime] = None,
) -> HandlerResult:
    if event.type == EVENT_DELETE:
        deleted = event.old_record or event.record or {}
        return HandlerResult(
            status_code=200,
            content={
                "success": True,
                "product_id": deleted.get("id"),
                "status": deleted.get("status"),
                "message": "Delete event ignored",
            },
        )

    record = dict(event.record or {})
    product_id = record.get("id")
    if not product_id:
        return error_result(400, "Change event is missing record.id")
    product_id = str(product_id)
    status = record.get("status")
    bind_product_context(product_id)
    logger.info("orchestrator_event_received", event_type=event.type, table=event.table, status=status)

    if is_status_unchanged(event.type, record, event.old_record):
        return HandlerResult(
            status_code=200,
            content={"success": True, "product_id": product_id, "status": status, "message": "No status change"},
        )

    plan = plan_transition(str(status or ""), now=now or datetime.now(timezone.utc), mode=mode)
    if plan is None:
        content: Dict[str, Any] = {
            "success": True,
            "product_id": product_id,
            "status": status,
            "message": "Status received, no action taken",
        }
        title = notification_title(record)
        if title is not None:
            _notify(session, record, title)
            content["notified"] = True
        return HandlerResult(status_code=200, content=content)

    try:
        product, applied = apply_transition(
            session,
            product_id=product_id,
            plan=plan,
            max_attempts=max_write_attempts,
        )
    except ProductNotFoundError:
        logger.warning("orchestrator_product_missing")
        return error_result(404, "Product not found", product_id=product_id)
    except ProductWriteConflictError as exc:
        logger.error("orchestrator_write_conflict_exhausted", attempts=exc.attempts)
        return error_result(409, str(exc), product_id=product_id)

    if not applied:
        logger.info("orchestrator_event_stale", current_status=product.status)
        return HandlerResult(
            status_code=200,
            content={
                "success": True,
                "product_id": product_id,
                "status": product.status,
                "message": "Status already advanced, no action taken",
            },
        )

    record_status_transition(from_status=plan.from_status, to_status=plan.to_status)
    logger.info(
        "orchestrator_status_transition",
        from_status=plan.from_status,
        to_status=plan.to_status,
        mode=mode,
    )

    snapshot = dict(record)
    snapshot.update(product_snapshot(product))
    outcomes = _fan_out(
        session,
        client=client,
        product_id=product_id,
        record=snapshot,
        triggers=plan.triggers,
    )

    return HandlerResult(
        status_code=200,
        content={
            "success": True,
            "product_id": product_id,
            "status": plan.to_status,
            "previous_status": plan.from_status,
            "triggers": [outcome.as_dict() for outcome in outcomes],
        },
    )
