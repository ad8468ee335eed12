"""Automation catalog: which n8n webhook or workflow serves each automation."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

import yaml

from src.core.config import get_settings


TRANSPORT_WEBHOOK = "webhook"
TRANSPORT_WORKFLOW = "workflow"

AUTOMATION_RESEARCH = "research"
AUTOMATION_BANNERS = "banners"
AUTOMATION_UGC_VIDEOS = "ugc_videos"
AUTOMATION_UGC_SCRIPTS = "ugc_scripts"
AUTOMATION_REVIEWS = "reviews"
AUTOMATION_SHOPIFY = "shopify"
AUTOMATION_RESUME = "resume"

DEFAULT_AUTOMATIONS: Dict[str, Dict[str, str]] = {
    AUTOMATION_RESEARCH: {"transport": TRANSPORT_WEBHOOK, "path": "/webhook/launchpad-research"},
    AUTOMATION_BANNERS: {"transport": TRANSPORT_WEBHOOK, "path": "/webhook/launchpad-banner-gen"},
    AUTOMATION_UGC_VIDEOS: {"transport": TRANSPORT_WEBHOOK, "path": "/webhook/launchpad-ugc-gen"},
    AUTOMATION_UGC_SCRIPTS: {"transport": TRANSPORT_WORKFLOW, "workflow_id": ""},
    AUTOMATION_REVIEWS: {"transport": TRANSPORT_WEBHOOK, "path": "/webhook/launchpad-reviews"},
    AUTOMATION_SHOPIFY: {"transport": TRANSPORT_WORKFLOW, "workflow_id": ""},
    AUTOMATION_RESUME: {"transport": TRANSPORT_WEBHOOK, "path": "/webhook/launchpad-banner-gen"},
}


@dataclass(frozen=True)
class AutomationTarget:
    key: str
    transport: str
    path: str = ""
    workflow_id: str = ""


def _resolve_catalog_path() -> Path:
    configured = Path(get_settings().automations_file_path)
    if configured.is_absolute():
        return configured
    return Path.cwd() / configured


def _build_target(key: str, raw: Dict[str, Any]) -> AutomationTarget:
    transport = str(raw.get("transport") or TRANSPORT_WEBHOOK).strip().lower()
    if transport not in {TRANSPORT_WEBHOOK, TRANSPORT_WORKFLOW}:
        raise ValueError(f"Automation {key} has unsupported transport: {transport}")

    path = str(raw.get("path") or "").strip()
    workflow_id = str(raw.get("workflow_id") or "").strip()
    if transport == TRANSPORT_WEBHOOK and not path:
        raise ValueError(f"Automation {key} requires a webhook path")
    return AutomationTarget(key=key, transport=transport, path=path, workflow_id=workflow_id)


@lru_cache(maxsize=1)
def load_automation_catalog() -> Dict[str, AutomationTarget]:
    """Merge the YAML catalog over the built-in defaults."""

    merged: Dict[str, Dict[str, Any]] = {key: dict(value) for key, value in DEFAULT_AUTOMATIONS.items()}

    path = _resolve_catalog_path()
    if path.exists():
        parsed = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(parsed, dict):
            raise ValueError("Automation catalog must be a YAML object")
        for key, overrides in parsed.items():
            if not isinstance(key, str) or not isinstance(overrides, dict):
                continue
            merged.setdefault(key, {}).update(overrides)

    return {key: _build_target(key, raw) for key, raw in merged.items()}


def get_automation_target(key: str) -> AutomationTarget:
    catalog = load_automation_catalog()
    if key not in catalog:
        raise LookupError(f"Unknown automation: {key}")
    return catalog[key]


def reset_automation_catalog_cache() -> None:
    load_automation_catalog.cache_clear()
