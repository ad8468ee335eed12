"""Automation run bookkeeping, one row per (product, automation type)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from src.storage.models import AutomationRun


RUN_STATUS_PROCESSING = "processing"
RUN_STATUS_COMPLETED = "completed"
RUN_STATUS_ERROR = "error"
RUN_STATUS_STOPPED = "stopped"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def get_run(session: Session, *, product_id: str, automation_type: str) -> Optional[AutomationRun]:
    return session.scalar(
        select(AutomationRun).where(
            AutomationRun.product_id == product_id,
            AutomationRun.automation_type == automation_type,
        )
    )


def list_runs(session: Session, *, product_id: str) -> List[AutomationRun]:
    return list(
        session.scalars(
            select(AutomationRun)
            .where(AutomationRun.product_id == product_id)
            .order_by(desc(AutomationRun.updated_at))
        ).all()
    )


def start_run(
    session: Session,
    *,
    product_id: str,
    user_id: Optional[str],
    automation_type: str,
    message: str,
) -> AutomationRun:
    """Upsert the run as freshly ``processing``; earlier attempts are overwritten."""

    now = _now_utc()
    run = get_run(session, product_id=product_id, automation_type=automation_type)
    if run is None:
        run = AutomationRun(product_id=product_id, automation_type=automation_type)
        session.add(run)
    run.user_id = user_id
    run.status = RUN_STATUS_PROCESSING
    run.progress = 0
    run.message = message
    run.execution_id = None
    run.started_at = now
    run.completed_at = None
    run.updated_at = now
    session.commit()
    return run


def mark_run(
    session: Session,
    *,
    product_id: str,
    automation_type: str,
    status: str,
    message: Optional[str] = None,
) -> Optional[AutomationRun]:
    run = get_run(session, product_id=product_id, automation_type=automation_type)
    if run is None:
        return None
    run.status = status
    if message is not None:
        run.message = message[:1000]
    run.updated_at = _now_utc()
    session.commit()
    return run


def update_run_progress(
    session: Session,
    *,
    product_id: str,
    automation_type: str,
    status: Optional[str] = None,
    progress: Optional[int] = None,
    message: Optional[str] = None,
    execution_id: Optional[str] = None,
) -> AutomationRun:
    run = get_run(session, product_id=product_id, automation_type=automation_type)
    if run is None:
        raise LookupError("Automation run not found")

    now = _now_utc()
    if progress is not None:
        run.progress = max(0, min(100, int(progress)))
    if message is not None:
        run.message = message
    if execution_id is not None:
        run.execution_id = execution_id
    if status is not None:
        run.status = status
        if status == RUN_STATUS_COMPLETED:
            run.progress = 100
            run.completed_at = now
    run.updated_at = now
    session.commit()
    return run
