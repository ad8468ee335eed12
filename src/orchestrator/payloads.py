"""Webhook payloads derived from a product record.

Every field resolves record value, then the same key in ``metadata``, then a
fixed default. Research insights come from ``metadata.research``.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping

from src.automations.catalog import AUTOMATION_BANNERS, AUTOMATION_RESEARCH, AUTOMATION_UGC_VIDEOS


DEFAULT_NICHE = "General"
DEFAULT_COUNTRY = "United States"
DEFAULT_LANGUAGE = "English"
DEFAULT_GENDER = "All"


def _metadata(record: Mapping[str, Any]) -> Mapping[str, Any]:
    metadata = record.get("metadata")
    return metadata if isinstance(metadata, dict) else {}


def resolve(record: Mapping[str, Any], *keys: str, default: Any = "") -> Any:
    metadata = _metadata(record)
    for key in keys:
        value = record.get(key)
        if value:
            return value
        value = metadata.get(key)
        if value:
            return value
    return default


def _research(record: Mapping[str, Any]) -> Mapping[str, Any]:
    research = _metadata(record).get("research")
    return research if isinstance(research, dict) else {}


def build_research_payload(record: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "productId": record.get("id"),
        "productName": record.get("name"),
        "productDescription": resolve(record, "description"),
        "niche": resolve(record, "niche", default=DEFAULT_NICHE),
        "amazonLink": resolve(record, "amazon_link"),
        "competitorLink1": resolve(record, "competitor_link_1"),
        "competitorLink2": resolve(record, "competitor_link_2"),
        "supplierUrl": resolve(record, "supplier_url", "aliexpress_link"),
        "country": resolve(record, "country", default=DEFAULT_COUNTRY),
    }


def build_banner_payload(record: Mapping[str, Any]) -> Dict[str, Any]:
    research = _research(record)
    return {
        "productId": record.get("id"),
        "productName": record.get("name"),
        "productDescription": resolve(record, "description"),
        "niche": resolve(record, "niche", default=DEFAULT_NICHE),
        "language": resolve(record, "language", default=DEFAULT_LANGUAGE),
        "country": resolve(record, "country", default=DEFAULT_COUNTRY),
        "gender": resolve(record, "gender", default=DEFAULT_GENDER),
        "productImageUrl": resolve(record, "product_image_url"),
        "painPoints": research.get("painPoints") or "",
        "sellingAngles": research.get("sellingAngles") or "",
        "creativeRecommendations": research.get("creativeRecommendations") or "",
    }


def build_ugc_video_payload(record: Mapping[str, Any]) -> Dict[str, Any]:
    research = _research(record)
    return {
        "productId": record.get("id"),
        "productName": record.get("name"),
        "productDescription": resolve(record, "description"),
        "niche": resolve(record, "niche", default=DEFAULT_NICHE),
        "productImage": resolve(record, "product_image_url"),
        "targetGender": resolve(record, "gender", default=DEFAULT_GENDER),
        "targetCountry": resolve(record, "country", default=DEFAULT_COUNTRY),
        "amazonLink": resolve(record, "amazon_link"),
        "competitorLink": resolve(record, "competitor_link_1"),
        "painPoints": research.get("painPoints") or "",
        "sellingAngles": research.get("sellingAngles") or "",
    }


PAYLOAD_BUILDERS: Dict[str, Callable[[Mapping[str, Any]], Dict[str, Any]]] = {
    AUTOMATION_RESEARCH: build_research_payload,
    AUTOMATION_BANNERS: build_banner_payload,
    AUTOMATION_UGC_VIDEOS: build_ugc_video_payload,
}
