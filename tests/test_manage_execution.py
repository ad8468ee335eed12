from __future__ import annotations

import httpx
from fastapi.testclient import TestClient

import src.api.main as api_main
from src.automations import runs
from src.executions.actions import _HANDLER_MAP, STOP_WARNING, ExecutionAction
from src.integrations.n8n.client import N8nClient, get_n8n_client
from src.storage.db import get_session
from tests.conftest import RecordingTransport, build_n8n_client


def _client_for(session_factory, n8n_client: N8nClient) -> TestClient:
    def override_get_session():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    api_main.app.dependency_overrides[get_session] = override_get_session
    api_main.app.dependency_overrides[get_n8n_client] = lambda: n8n_client
    return TestClient(api_main.app)


def test_every_action_has_a_handler() -> None:
    assert set(_HANDLER_MAP) == set(ExecutionAction)


def test_missing_action_is_rejected(session_factory) -> None:
    transport = RecordingTransport()
    try:
        client = _client_for(session_factory, build_n8n_client(transport))
        response = client.post("/api/manage-execution", json={"executionId": "42"})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing action parameter"}
        assert transport.requests == []
    finally:
        api_main.app.dependency_overrides.clear()


def test_unknown_action_is_rejected(session_factory) -> None:
    transport = RecordingTransport()
    try:
        client = _client_for(session_factory, build_n8n_client(transport))
        response = client.post("/api/manage-execution", json={"action": "pause", "executionId": "42"})

        assert response.status_code == 400
        assert response.json() == {"error": "Unknown action: pause"}
        assert transport.requests == []
    finally:
        api_main.app.dependency_overrides.clear()


def test_stop_success_returns_n8n_data(session_factory) -> None:
    transport = RecordingTransport(lambda request: httpx.Response(200, json={"id": "42", "stoppedAt": "now"}))
    try:
        client = _client_for(session_factory, build_n8n_client(transport))
        response = client.post("/api/manage-execution", json={"action": "stop", "executionId": 42})

        assert response.status_code == 200
        payload = response.json()
        assert payload["success"] is True
        assert payload["message"] == "Execution stopped"
        assert payload["executionId"] == "42"
        assert payload["data"] == {"id": "42", "stoppedAt": "now"}
        assert transport.paths() == ["/api/v1/executions/42/stop"]
    finally:
        api_main.app.dependency_overrides.clear()


def test_stop_failure_downstream_is_a_soft_success(session_factory) -> None:
    transport = RecordingTransport(lambda request: httpx.Response(404, json={"message": "not found"}))
    try:
        client = _client_for(session_factory, build_n8n_client(transport))
        response = client.post("/api/manage-execution", json={"action": "stop", "executionId": "42"})

        assert response.status_code == 200
        payload = response.json()
        assert payload["success"] is True
        assert payload["warning"] == STOP_WARNING
        assert payload["executionId"] == "42"
    finally:
        api_main.app.dependency_overrides.clear()


def test_stop_unreachable_n8n_is_a_soft_success(session_factory) -> None:
    def _refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    try:
        client = _client_for(session_factory, build_n8n_client(RecordingTransport(_refuse)))
        response = client.post("/api/manage-execution", json={"action": "stop", "executionId": "42"})

        assert response.status_code == 200
        assert response.json()["warning"] == STOP_WARNING
    finally:
        api_main.app.dependency_overrides.clear()


def test_stop_marks_local_run_stopped(session_factory) -> None:
    with session_factory() as setup_session:
        runs.start_run(
            setup_session,
            product_id="p1",
            user_id="u1",
            automation_type="banner",
            message="Starting banner generation...",
        )

    transport = RecordingTransport(lambda request: httpx.Response(500, text="oops"))
    try:
        client = _client_for(session_factory, build_n8n_client(transport))
        response = client.post(
            "/api/manage-execution",
            json={"action": "stop", "executionId": "42", "productId": "p1", "automationType": "banner"},
        )
        assert response.status_code == 200

        with session_factory() as verify_session:
            run = runs.get_run(verify_session, product_id="p1", automation_type="banner")
            assert run is not None
            assert run.status == "stopped"
    finally:
        api_main.app.dependency_overrides.clear()


def test_stop_requires_execution_id(session_factory) -> None:
    transport = RecordingTransport()
    try:
        client = _client_for(session_factory, build_n8n_client(transport))
        response = client.post("/api/manage-execution", json={"action": "stop"})

        assert response.status_code == 400
        assert transport.requests == []
    finally:
        api_main.app.dependency_overrides.clear()


def test_status_relays_downstream_failure(session_factory) -> None:
    transport = RecordingTransport(lambda request: httpx.Response(404, text="Execution not found"))
    try:
        client = _client_for(session_factory, build_n8n_client(transport))
        response = client.post("/api/manage-execution", json={"action": "status", "executionId": "42"})

        assert response.status_code == 404
        assert response.json() == {"error": "Failed to get execution status", "details": "Execution not found"}
    finally:
        api_main.app.dependency_overrides.clear()


def test_status_returns_execution(session_factory) -> None:
    transport = RecordingTransport(lambda request: httpx.Response(200, json={"id": "42", "finished": False}))
    try:
        client = _client_for(session_factory, build_n8n_client(transport))
        response = client.post("/api/manage-execution", json={"action": "status", "executionId": "42"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "execution": {"id": "42", "finished": False}}
    finally:
        api_main.app.dependency_overrides.clear()


def test_resume_requires_product(session_factory) -> None:
    transport = RecordingTransport()
    try:
        client = _client_for(session_factory, build_n8n_client(transport))
        response = client.post("/api/manage-execution", json={"action": "resume", "productId": "p1"})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing product data for resume action"}
        assert transport.requests == []
    finally:
        api_main.app.dependency_overrides.clear()


def test_resume_retriggers_generation_with_checkpoint_flag(session_factory) -> None:
    transport = RecordingTransport(lambda request: httpx.Response(200, json={"queued": True}))
    try:
        client = _client_for(session_factory, build_n8n_client(transport))
        response = client.post(
            "/api/manage-execution",
            json={
                "action": "resume",
                "productId": "p1",
                "product": {"name": "Widget", "niche": "Outdoor"},
            },
        )

        assert response.status_code == 200
        payload = response.json()
        assert payload["success"] is True
        assert payload["message"] == "Execution resumed"
        assert payload["productId"] == "p1"

        assert transport.paths() == ["/webhook/launchpad-banner-gen"]
        sent = transport.json_bodies()[0]
        assert sent["product_id"] == "p1"
        assert sent["name"] == "Widget"
        assert sent["niche"] == "Outdoor"
        assert sent["resume_from_checkpoint"] is True
        assert sent["trigger_source"] == "launchpad-app-resume"
        assert sent["triggered_at"]
    finally:
        api_main.app.dependency_overrides.clear()


def test_resume_accepts_empty_product_object(session_factory) -> None:
    transport = RecordingTransport(lambda request: httpx.Response(200, json={"queued": True}))
    try:
        client = _client_for(session_factory, build_n8n_client(transport))
        response = client.post("/api/manage-execution", json={"action": "resume", "productId": "p1", "product": {}})

        assert response.status_code == 200
        assert len(transport.requests) == 1
        sent = transport.json_bodies()[0]
        assert sent["product_id"] == "p1"
        assert sent["resume_from_checkpoint"] is True
    finally:
        api_main.app.dependency_overrides.clear()

def test_list_running_queries_running_executions(session_factory) -> None:
    transport = RecordingTransport(lambda request: httpx.Response(200, json={"data": [{"id": "7"}]}))
    try:
        client = _client_for(session_factory, build_n8n_client(transport))
        response = client.post("/api/manage-execution", json={"action": "list-running"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "executions": {"data": [{"id": "7"}]}}
        request = transport.requests[0]
        assert request.url.path == "/api/v1/executions"
        assert request.url.params["status"] == "running"
    finally:
        api_main.app.dependency_overrides.clear()
