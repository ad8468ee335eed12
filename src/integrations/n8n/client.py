"""HTTP client for the n8n automation engine (webhooks and REST API)."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Optional

import httpx

from src.automations.catalog import TRANSPORT_WORKFLOW, AutomationTarget
from src.core.config import get_settings


API_KEY_HEADER = "X-N8N-API-KEY"


class N8nError(RuntimeError):
    """Raised when n8n cannot be reached or the request is unusable."""


class N8nTransportError(N8nError):
    """Raised on connection failures and timeouts."""


@dataclass(frozen=True)
class N8nResponse:
    status_code: int
    body: Any
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def parse_response_body(response: httpx.Response) -> Any:
    """Decode JSON replies; wrap anything else as ``{"message": text}``."""

    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            return response.json()
        except ValueError:
            return {"message": response.text}
    return {"message": response.text}


class N8nClient:
    def __init__(
        self,
        *,
        base_url: str,
        api_key: str = "",
        timeout_seconds: int = 30,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._base_url = base_url.strip().rstrip("/")
        self._api_key = api_key.strip()
        self._timeout_seconds = max(1, timeout_seconds)
        self._client = client

    @property
    def base_url(self) -> str:
        return self._base_url

    def webhook_url(self, path: str) -> str:
        return f"{self._base_url}/{path.strip().lstrip('/')}"

    def workflow_execute_url(self, workflow_id: str) -> str:
        return f"{self._base_url}/api/v1/workflows/{workflow_id}/execute"

    def target_url(self, target: AutomationTarget) -> str:
        if target.transport == TRANSPORT_WORKFLOW:
            return self.workflow_execute_url(target.workflow_id)
        return self.webhook_url(target.path)

    def _api_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers[API_KEY_HEADER] = self._api_key
        return headers

    def _request(
        self,
        method: str,
        url: str,
        *,
        headers: Dict[str, str],
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> N8nResponse:
        try:
            if self._client is not None:
                response = self._client.request(method, url, headers=headers, json=json, params=params)
            else:
                with httpx.Client(timeout=self._timeout_seconds) as client:
                    response = client.request(method, url, headers=headers, json=json, params=params)
        except httpx.HTTPError as exc:
            raise N8nTransportError(f"n8n_request_failed url={url} error={exc}") from exc

        return N8nResponse(
            status_code=response.status_code,
            body=parse_response_body(response),
            text=response.text,
        )

    def post_webhook(self, url: str, payload: Dict[str, Any]) -> N8nResponse:
        return self._request("POST", url, headers={"Content-Type": "application/json"}, json=payload)

    def deliver(self, *, transport: str, url: str, payload: Dict[str, Any]) -> N8nResponse:
        """Send ``payload`` to an already resolved URL using the given transport."""

        if transport == TRANSPORT_WORKFLOW:
            return self._request(
                "POST",
                url,
                headers=self._api_headers(),
                json={"workflowData": {"body": payload}},
            )
        return self.post_webhook(url, payload)

    def execute_workflow(self, workflow_id: str, body: Dict[str, Any]) -> N8nResponse:
        """Run a workflow through the REST API, shaped like a webhook body."""

        if not workflow_id.strip():
            raise N8nError("n8n_workflow_id_missing")
        return self.deliver(transport=TRANSPORT_WORKFLOW, url=self.workflow_execute_url(workflow_id), payload=body)

    def trigger(self, target: AutomationTarget, payload: Dict[str, Any]) -> N8nResponse:
        if target.transport == TRANSPORT_WORKFLOW:
            return self.execute_workflow(target.workflow_id, payload)
        return self.post_webhook(self.webhook_url(target.path), payload)

    def stop_execution(self, execution_id: str) -> N8nResponse:
        return self._request(
            "POST",
            f"{self._base_url}/api/v1/executions/{execution_id}/stop",
            headers=self._api_headers(),
        )

    def get_execution(self, execution_id: str) -> N8nResponse:
        return self._request(
            "GET",
            f"{self._base_url}/api/v1/executions/{execution_id}",
            headers={API_KEY_HEADER: self._api_key},
        )

    def list_executions(self, *, status: str = "running", limit: int = 50) -> N8nResponse:
        return self._request(
            "GET",
            f"{self._base_url}/api/v1/executions",
            headers={API_KEY_HEADER: self._api_key},
            params={"status": status, "limit": limit},
        )


@lru_cache(maxsize=1)
def get_n8n_client() -> N8nClient:
    settings = get_settings()
    return N8nClient(
        base_url=settings.n8n_base_url,
        api_key=settings.n8n_api_key,
        timeout_seconds=settings.n8n_timeout_seconds,
    )
