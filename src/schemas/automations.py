"""Pydantic schemas for automation run endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AutomationRunUpdateRequest(BaseModel):
    status: Optional[str] = Field(default=None, min_length=1, max_length=32)
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    message: Optional[str] = Field(default=None, max_length=1000)
    execution_id: Optional[str] = Field(default=None, max_length=64)


class AutomationRunItem(BaseModel):
    id: str
    product_id: str
    user_id: Optional[str]
    automation_type: str
    status: str
    progress: int
    message: Optional[str]
    execution_id: Optional[str]
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AutomationRunListResponse(BaseModel):
    product_id: str
    items: list[AutomationRunItem]
