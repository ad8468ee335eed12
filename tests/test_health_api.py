from fastapi.testclient import TestClient

import src.api.main as api_main


def test_health_returns_ok_when_services_are_up(monkeypatch) -> None:
    monkeypatch.setattr(api_main, "test_db_connection", lambda: (True, None))
    monkeypatch.setattr(api_main, "test_redis_connection", lambda: (True, None))

    client = TestClient(api_main.app)
    response = client.get("/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["services"]["database"]["ok"] is True
    assert payload["services"]["redis"]["ok"] is True


def test_health_returns_503_when_any_dependency_fails(monkeypatch) -> None:
    monkeypatch.setattr(api_main, "test_db_connection", lambda: (False, "db unavailable"))
    monkeypatch.setattr(api_main, "test_redis_connection", lambda: (True, None))

    client = TestClient(api_main.app)
    response = client.get("/health")

    assert response.status_code == 503
    payload = response.json()
    assert payload["status"] == "degraded"
    assert payload["services"]["database"]["error"] == "db unavailable"


def test_version_endpoint() -> None:
    client = TestClient(api_main.app)
    response = client.get("/version")

    assert response.status_code == 200
    payload = response.json()
    assert payload["name"] == "launchpad"
    assert payload["version"]


def test_request_id_header_is_echoed() -> None:
    client = TestClient(api_main.app)
    response = client.get("/version", headers={"x-request-id": "req-launchpad-1"})

    assert response.headers["x-request-id"] == "req-launchpad-1"


def test_wrong_method_returns_json_error() -> None:
    client = TestClient(api_main.app)
    response = client.get("/api/trigger-banners")

    assert response.status_code == 405
    assert response.json() == {"error": "Method not allowed"}


def test_cors_preflight_is_answered() -> None:
    client = TestClient(api_main.app)
    response = client.options(
        "/api/trigger-banners",
        headers={
            "Origin": "https://dashboard.launchpad.example",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]
