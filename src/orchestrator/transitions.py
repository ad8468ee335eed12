"""Product status state machine driven by database change events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple

from src.automations.catalog import AUTOMATION_BANNERS, AUTOMATION_RESEARCH, AUTOMATION_UGC_VIDEOS


STATUS_NEW = "new"
STATUS_RESEARCHING = "researching"
STATUS_REVIEW = "review"
STATUS_APPROVED = "approved"
STATUS_BANNER_GEN = "banner_gen"
STATUS_LIVE = "live"

MODE_FULL = "full"
MODE_SIMPLE = "simple"

EVENT_INSERT = "INSERT"
EVENT_UPDATE = "UPDATE"
EVENT_DELETE = "DELETE"


@dataclass(frozen=True)
class TransitionPlan:
    from_status: str
    to_status: str
    metadata_updates: Dict[str, Any]
    triggers: Tuple[str, ...] = field(default_factory=tuple)


def is_status_unchanged(event_type: str, record: Mapping[str, Any], old_record: Optional[Mapping[str, Any]]) -> bool:
    """UPDATE events that keep the status are echoes of our own writes."""

    if event_type != EVENT_UPDATE:
        return False
    previous = (old_record or {}).get("status")
    return record.get("status") == previous


def plan_transition(status: str, *, now: datetime, mode: str = MODE_FULL) -> Optional[TransitionPlan]:
    stamp = now.isoformat()

    if status == STATUS_NEW:
        updates: Dict[str, Any] = {"workflow_started_at": stamp, "current_step": "research"}
        if mode == MODE_SIMPLE:
            updates["note"] = "Auto-transitioned by orchestrator"
        return TransitionPlan(
            from_status=STATUS_NEW,
            to_status=STATUS_RESEARCHING,
            metadata_updates=updates,
            triggers=(AUTOMATION_RESEARCH,) if mode == MODE_FULL else (),
        )

    if status == STATUS_APPROVED:
        return TransitionPlan(
            from_status=STATUS_APPROVED,
            to_status=STATUS_BANNER_GEN,
            metadata_updates={"approved_at": stamp, "current_step": "creatives"},
            triggers=(AUTOMATION_BANNERS, AUTOMATION_UGC_VIDEOS) if mode == MODE_FULL else (),
        )

    return None


def notification_title(record: Mapping[str, Any]) -> Optional[str]:
    """Operator-facing message for statuses that need a human, else None."""

    status = record.get("status")
    name = record.get("name") or record.get("id")
    if status == STATUS_REVIEW:
        research = (record.get("metadata") or {}).get("research") or {}
        score = research.get("score") or "N/A"
        return f"Research complete for {name}! Score: {score}/10"
    if status == STATUS_LIVE:
        return f"{name} is LIVE! Campaign running on Meta."
    return None
