"""Webhook proxy handlers that forward dashboard triggers to n8n.

Each proxy validates a fixed set of required fields, builds the canonical
payload the n8n workflow expects, sends exactly one request and relays the
reply. Optional caller fields fall back to defaults with JavaScript-style
truthiness: an empty string counts as unset.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from src.automations import runs
from src.automations.catalog import (
    AUTOMATION_BANNERS,
    AUTOMATION_REVIEWS,
    AUTOMATION_SHOPIFY,
    AUTOMATION_UGC_SCRIPTS,
    get_automation_target,
)
from src.core.logger import get_logger
from src.core.metrics import record_webhook_trigger
from src.core.responses import HandlerResult, error_result
from src.integrations.n8n.client import N8nClient, N8nError


logger = get_logger("launchpad.automations.proxy")

BASE_REQUIRED_FIELDS: Tuple[str, ...] = ("id", "user_id", "name")


@dataclass(frozen=True)
class TriggerStamp:
    triggered_at: str
    trigger_source: str


PayloadBuilder = Callable[[Mapping[str, Any], TriggerStamp], Dict[str, Any]]


@dataclass(frozen=True)
class ProxyDefinition:
    automation: str
    run_type: str
    label: str
    required_fields: Tuple[str, ...]
    build_payload: PayloadBuilder
    started_message: str

    def render_started_message(self, body: Mapping[str, Any]) -> str:
        return self.started_message.format(**{key: body.get(key, "") for key in self.required_fields})


def _value(body: Mapping[str, Any], key: str, default: Any = "") -> Any:
    value = body.get(key)
    return value if value else default


def _first(body: Mapping[str, Any], *keys: str, default: Any = "") -> Any:
    for key in keys:
        value = body.get(key)
        if value:
            return value
    return default


def build_banner_payload(body: Mapping[str, Any], stamp: TriggerStamp) -> Dict[str, Any]:
    return {
        "product_id": body["id"],
        "user_id": body["user_id"],
        "name": body["name"],
        "product_name": body["name"],
        "niche": _value(body, "niche", "General"),
        "country": _value(body, "country", "US"),
        "language": _value(body, "language", "English"),
        "gender": _value(body, "gender", "All"),
        "target_market": _first(body, "target_market", "country", default="US"),
        "amazon_link": _value(body, "amazon_link"),
        "aliexpress_link": _first(body, "source_url", "aliexpress_link"),
        "competitor_link_1": _value(body, "competitor_link_1"),
        "competitor_link_2": _value(body, "competitor_link_2"),
        "product_image_url": _value(body, "product_image_url"),
        "status": _value(body, "status", "new"),
        "triggered_at": stamp.triggered_at,
        "trigger_source": stamp.trigger_source,
    }


def build_reviews_payload(body: Mapping[str, Any], stamp: TriggerStamp) -> Dict[str, Any]:
    return {
        "product_id": body["id"],
        "user_id": body["user_id"],
        "name": body["name"],
        "product_name": body["name"],
        "description": _value(body, "description"),
        "niche": _value(body, "niche", "General"),
        "country": _value(body, "country", "US"),
        "language": _value(body, "language", "English"),
        "product_image_url": _value(body, "product_image_url"),
        "triggered_at": stamp.triggered_at,
        "trigger_source": stamp.trigger_source,
    }


def build_ugc_scripts_payload(body: Mapping[str, Any], stamp: TriggerStamp) -> Dict[str, Any]:
    return {
        "productId": body["id"],
        "userId": body["user_id"],
        "productName": body["name"],
        "productDescription": _value(body, "description"),
        "niche": _value(body, "niche", "General"),
        "country": _value(body, "country", "US"),
        "language": _value(body, "language", "English"),
        "targetAudience": _value(body, "target_audience"),
        "productImageUrl": _value(body, "product_image_url"),
        "triggeredAt": stamp.triggered_at,
        "triggerSource": stamp.trigger_source,
    }


def build_shopify_payload(body: Mapping[str, Any], stamp: TriggerStamp) -> Dict[str, Any]:
    return {
        "productId": body["id"],
        "userId": body["user_id"],
        "productName": body["name"],
        "productDescription": _value(body, "description"),
        "price": _value(body, "price", 0),
        "shopifyStore": body["shopify_store"],
        "niche": _value(body, "niche", "General"),
        "productImageUrl": _value(body, "product_image_url"),
        "landingPageUrl": _value(body, "landing_page_url"),
        "generatedBanners": _value(body, "generated_banners", []),
        "triggeredAt": stamp.triggered_at,
        "triggerSource": stamp.trigger_source,
    }


BANNER_PROXY = ProxyDefinition(
    automation=AUTOMATION_BANNERS,
    run_type="banner",
    label="banner generation",
    required_fields=BASE_REQUIRED_FIELDS,
    build_payload=build_banner_payload,
    started_message="Banner generation started",
)
REVIEWS_PROXY = ProxyDefinition(
    automation=AUTOMATION_REVIEWS,
    run_type="reviews",
    label="review generation",
    required_fields=BASE_REQUIRED_FIELDS,
    build_payload=build_reviews_payload,
    started_message="Review generation started",
)
UGC_SCRIPTS_PROXY = ProxyDefinition(
    automation=AUTOMATION_UGC_SCRIPTS,
    run_type="ugc",
    label="UGC script generation",
    required_fields=BASE_REQUIRED_FIELDS,
    build_payload=build_ugc_scripts_payload,
    started_message="UGC script generation started",
)
SHOPIFY_PROXY = ProxyDefinition(
    automation=AUTOMATION_SHOPIFY,
    run_type="shopify",
    label="Shopify deployment",
    required_fields=BASE_REQUIRED_FIELDS + ("shopify_store",),
    build_payload=build_shopify_payload,
    started_message="Shopify deployment started to {shopify_store}",
)


def missing_required_fields(body: Mapping[str, Any], required: Tuple[str, ...]) -> List[str]:
    return [field for field in required if not body.get(field)]


def _validation_error(body: Mapping[str, Any], definition: ProxyDefinition) -> Optional[HandlerResult]:
    missing = missing_required_fields(body, definition.required_fields)
    if not missing:
        return None
    return error_result(
        400,
        "Missing required fields",
        required=list(definition.required_fields),
        missing=missing,
        received={field: bool(body.get(field)) for field in definition.required_fields},
    )


def trigger_automation(
    session: Session,
    definition: ProxyDefinition,
    body: Mapping[str, Any],
    *,
    client: N8nClient,
    trigger_source: str,
    now: Optional[datetime] = None,
) -> HandlerResult:
    invalid = _validation_error(body, definition)
    if invalid is not None:
        logger.info(
            "proxy_validation_failed",
            automation=definition.automation,
            missing=invalid.content["missing"],
        )
        return invalid

    product_id = str(body["id"])
    stamp = TriggerStamp(
        triggered_at=(now or datetime.now(timezone.utc)).isoformat(),
        trigger_source=trigger_source,
    )
    payload = definition.build_payload(body, stamp)
    target = get_automation_target(definition.automation)

    runs.start_run(
        session,
        product_id=product_id,
        user_id=str(body["user_id"]),
        automation_type=definition.run_type,
        message=f"Starting {definition.label}...",
    )

    try:
        response = client.trigger(target, payload)
    except N8nError as exc:
        logger.error("proxy_trigger_exception", automation=definition.automation, error=str(exc))
        record_webhook_trigger(automation=definition.automation, outcome="error")
        runs.mark_run(
            session,
            product_id=product_id,
            automation_type=definition.run_type,
            status=runs.RUN_STATUS_ERROR,
            message=str(exc),
        )
        return error_result(500, f"Failed to trigger {definition.label}", message=str(exc))
    except Exception as exc:
        record_webhook_trigger(automation=definition.automation, outcome="error")
        runs.mark_run(
            session,
            product_id=product_id,
            automation_type=definition.run_type,
            status=runs.RUN_STATUS_ERROR,
            message=str(exc) or type(exc).__name__,
        )
        raise

    if not response.ok:
        logger.warning(
            "proxy_trigger_failed",
            automation=definition.automation,
            status_code=response.status_code,
        )
        record_webhook_trigger(automation=definition.automation, outcome="failed")
        runs.mark_run(
            session,
            product_id=product_id,
            automation_type=definition.run_type,
            status=runs.RUN_STATUS_ERROR,
            message=f"n8n webhook failed with status {response.status_code}",
        )
        return error_result(response.status_code, "n8n webhook failed", details=response.body)

    logger.info("proxy_trigger_delivered", automation=definition.automation, status_code=response.status_code)
    record_webhook_trigger(automation=definition.automation, outcome="delivered")

    content: Dict[str, Any] = {
        "success": True,
        "message": definition.render_started_message(body),
        "product_id": body["id"],
    }
    if "shopify_store" in definition.required_fields:
        content["shopify_store"] = body["shopify_store"]
    content["n8n_response"] = response.body
    return HandlerResult(status_code=200, content=content)
