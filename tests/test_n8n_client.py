from __future__ import annotations

import json

import httpx
import pytest

from src.automations.catalog import TRANSPORT_WEBHOOK, TRANSPORT_WORKFLOW, AutomationTarget
from src.integrations.n8n.client import API_KEY_HEADER, N8nError, N8nTransportError
from tests.conftest import N8N_TEST_BASE_URL, RecordingTransport, build_n8n_client


def test_webhook_trigger_posts_payload_without_api_key() -> None:
    transport = RecordingTransport(lambda request: httpx.Response(200, json={"received": True}))
    client = build_n8n_client(transport)
    target = AutomationTarget(key="banners", transport=TRANSPORT_WEBHOOK, path="/webhook/launchpad-banner-gen")

    response = client.trigger(target, {"product_id": "p-1"})

    assert response.ok is True
    assert response.body == {"received": True}
    assert len(transport.requests) == 1
    request = transport.requests[0]
    assert request.method == "POST"
    assert str(request.url) == f"{N8N_TEST_BASE_URL}/webhook/launchpad-banner-gen"
    assert API_KEY_HEADER not in request.headers
    assert json.loads(request.content) == {"product_id": "p-1"}


def test_workflow_trigger_wraps_body_and_sends_api_key() -> None:
    transport = RecordingTransport(lambda request: httpx.Response(200, json={"data": {"id": "exec-1"}}))
    client = build_n8n_client(transport, api_key="secret-key")
    target = AutomationTarget(key="shopify", transport=TRANSPORT_WORKFLOW, workflow_id="ERsflpyBzGCZefpD")

    client.trigger(target, {"productId": "p-1"})

    request = transport.requests[0]
    assert request.url.path == "/api/v1/workflows/ERsflpyBzGCZefpD/execute"
    assert request.headers[API_KEY_HEADER] == "secret-key"
    assert json.loads(request.content) == {"workflowData": {"body": {"productId": "p-1"}}}


def test_workflow_trigger_without_id_is_rejected_before_sending() -> None:
    transport = RecordingTransport()
    client = build_n8n_client(transport)
    target = AutomationTarget(key="ugc_scripts", transport=TRANSPORT_WORKFLOW, workflow_id="")

    with pytest.raises(N8nError):
        client.trigger(target, {"productId": "p-1"})

    assert transport.requests == []


def test_deliver_sends_to_stored_url_with_its_transport() -> None:
    transport = RecordingTransport()
    client = build_n8n_client(transport, api_key="secret-key")

    client.deliver(transport=TRANSPORT_WEBHOOK, url=f"{N8N_TEST_BASE_URL}/webhook/old-path", payload={"a": 1})
    client.deliver(
        transport=TRANSPORT_WORKFLOW,
        url=f"{N8N_TEST_BASE_URL}/api/v1/workflows/wf-1/execute",
        payload={"b": 2},
    )

    webhook_request, workflow_request = transport.requests
    assert webhook_request.url.path == "/webhook/old-path"
    assert API_KEY_HEADER not in webhook_request.headers
    assert json.loads(webhook_request.content) == {"a": 1}
    assert workflow_request.headers[API_KEY_HEADER] == "secret-key"
    assert json.loads(workflow_request.content) == {"workflowData": {"body": {"b": 2}}}

def test_non_json_reply_is_wrapped_as_message() -> None:
    transport = RecordingTransport(lambda request: httpx.Response(502, text="Bad gateway"))
    client = build_n8n_client(transport)

    response = client.post_webhook(f"{N8N_TEST_BASE_URL}/webhook/launchpad-reviews", {"product_id": "p-1"})

    assert response.ok is False
    assert response.status_code == 502
    assert response.body == {"message": "Bad gateway"}
    assert response.text == "Bad gateway"


def test_connection_errors_raise_transport_error() -> None:
    def _refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = build_n8n_client(RecordingTransport(_refuse))

    with pytest.raises(N8nTransportError):
        client.stop_execution("123")


def test_execution_endpoints_use_rest_api() -> None:
    transport = RecordingTransport(lambda request: httpx.Response(200, json={"data": []}))
    client = build_n8n_client(transport, api_key="secret-key")

    client.stop_execution("123")
    client.get_execution("123")
    client.list_executions(status="running", limit=50)

    methods_and_paths = [(request.method, request.url.path) for request in transport.requests]
    assert methods_and_paths == [
        ("POST", "/api/v1/executions/123/stop"),
        ("GET", "/api/v1/executions/123"),
        ("GET", "/api/v1/executions"),
    ]
    assert transport.requests[2].url.params["status"] == "running"
    assert transport.requests[2].url.params["limit"] == "50"
    assert all(request.headers[API_KEY_HEADER] == "secret-key" for request in transport.requests)
