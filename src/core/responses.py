"""Transport-neutral handler results rendered as JSON responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

from fastapi.responses import JSONResponse


@dataclass(frozen=True)
class HandlerResult:
    status_code: int
    content: Dict[str, Any] = field(default_factory=dict)

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.content)


def error_result(status_code: int, error: str, **extra: Any) -> HandlerResult:
    content: Dict[str, Any] = {"error": error}
    content.update(extra)
    return HandlerResult(status_code=status_code, content=content)
