"""Schema for the execution management endpoint."""

from __future__ import annotations

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ExecutionRequest(BaseModel):
    """Body accepted by ``POST /api/manage-execution`` (camelCase like the dashboard sends)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    action: Optional[str] = None
    execution_id: Optional[Union[str, int]] = Field(default=None, alias="executionId")
    product_id: Optional[str] = Field(default=None, alias="productId")
    product: Optional[Dict[str, Any]] = None
    automation_type: Optional[str] = Field(default=None, alias="automationType")

    @property
    def execution_ref(self) -> Optional[str]:
        if self.execution_id is None:
            return None
        normalized = str(self.execution_id).strip()
        return normalized or None
