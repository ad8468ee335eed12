from fastapi.testclient import TestClient

import src.api.main as api_main
from src.storage.db import get_session
from src.core.metrics import (
    record_execution_action,
    record_status_transition,
    record_webhook_trigger,
    render_prometheus_metrics,
    reset_metrics_for_tests,
)


def test_metrics_endpoint_returns_prometheus_payload(monkeypatch) -> None:
    reset_metrics_for_tests()
    monkeypatch.setattr(api_main.settings, "metrics_enabled", True)
    monkeypatch.setattr(api_main, "test_db_connection", lambda: (True, None))
    monkeypatch.setattr(api_main, "test_redis_connection", lambda: (True, None))

    client = TestClient(api_main.app)
    version_response = client.get("/version")
    assert version_response.status_code == 200

    metrics_response = client.get("/metrics")
    assert metrics_response.status_code == 200
    assert metrics_response.headers["content-type"].startswith("text/plain")
    body = metrics_response.text
    assert "launchpad_build_info" in body
    assert 'launchpad_http_requests_total{method="GET",path="/version",status="200"}' in body
    assert "launchpad_http_request_duration_seconds_sum" in body


def test_metrics_endpoint_disabled_returns_404(monkeypatch) -> None:
    monkeypatch.setattr(api_main.settings, "metrics_enabled", False)
    client = TestClient(api_main.app)
    response = client.get("/metrics")
    assert response.status_code == 404


def test_domain_counters_are_rendered() -> None:
    reset_metrics_for_tests()
    record_webhook_trigger(automation="research", outcome="delivered")
    record_webhook_trigger(automation="research", outcome="delivered")
    record_status_transition(from_status="new", to_status="researching")
    record_execution_action(action="stop", outcome="soft_failure")

    body = render_prometheus_metrics(app_name="launchpad", app_version="0.1.0", env="test")

    assert 'launchpad_webhook_triggers_total{automation="research",outcome="delivered"} 2' in body
    assert 'launchpad_status_transitions_total{from_status="new",to_status="researching"} 1' in body
    assert 'launchpad_execution_actions_total{action="stop",outcome="soft_failure"} 1' in body


def test_http_metrics_use_route_template_labels(monkeypatch, session_factory) -> None:
    reset_metrics_for_tests()
    monkeypatch.setattr(api_main.settings, "metrics_enabled", True)

    def override_get_session():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    api_main.app.dependency_overrides[get_session] = override_get_session
    try:
        client = TestClient(api_main.app)
        for index in range(3):
            assert client.get(f"/automation-runs/prod-{index}").status_code == 200
        assert client.get("/no-such-page/abc123").status_code == 404

        body = client.get("/metrics").text
    finally:
        api_main.app.dependency_overrides.clear()

    assert 'launchpad_http_requests_total{method="GET",path="/automation-runs/{product_id}",status="200"} 3' in body
    assert 'path="unmatched",status="404"' in body
    assert "prod-1" not in body
    assert "abc123" not in body
