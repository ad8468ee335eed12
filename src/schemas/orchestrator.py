"""Schemas for the status orchestrator and its dispatch outbox."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChangeEvent(BaseModel):
    """Database webhook envelope delivered once per row mutation."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: Literal["INSERT", "UPDATE", "DELETE"]
    table: str = "products"
    db_schema: Optional[str] = Field(default=None, alias="schema")
    record: Optional[Dict[str, Any]] = None
    old_record: Optional[Dict[str, Any]] = None


class DispatchItem(BaseModel):
    id: str
    product_id: str
    automation: str
    transport: str
    target_url: str
    status: str
    attempts: int
    last_status_code: Optional[int]
    last_error: Optional[str]
    attempted_at: Optional[datetime]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DispatchListResponse(BaseModel):
    items: list[DispatchItem]
