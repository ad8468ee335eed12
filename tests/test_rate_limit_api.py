from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

import src.api.main as api_main
from src.core.metrics import render_prometheus_metrics, reset_metrics_for_tests
from src.core.rate_limit import InMemoryIPRateLimiter, RateLimitDecision, RedisIPRateLimiter


class _StaticLimiter:
    def __init__(self, decision: RateLimitDecision) -> None:
        self._decision = decision

    def check(self, *, ip: str) -> RateLimitDecision:  # noqa: ARG002
        return self._decision


class _UnavailableRedis:
    def incr(self, key: str):
        del key
        raise RedisConnectionError("redis down")

    def expire(self, key: str, seconds: int):
        del key, seconds
        return True


def test_rate_limit_blocks_request_and_sets_headers(monkeypatch) -> None:
    reset_metrics_for_tests()
    monkeypatch.setattr(api_main.settings, "env", "production")
    monkeypatch.setattr(api_main.settings, "ip_rate_limit_enabled", True)
    monkeypatch.setattr(
        api_main,
        "get_ip_rate_limiter",
        lambda: _StaticLimiter(
            RateLimitDecision(
                allowed=False,
                limit=10,
                remaining=0,
                reset_seconds=30,
            )
        ),
    )

    client = TestClient(api_main.app)
    response = client.get("/version")

    assert response.status_code == 429
    assert response.json()["error"] == "Rate limit exceeded"
    assert response.headers["x-rate-limit-limit"] == "10"
    assert response.headers["x-rate-limit-remaining"] == "0"
    assert response.headers["x-rate-limit-reset"] == "30"
    body = render_prometheus_metrics(app_name="launchpad", app_version="0.1.0", env="production")
    assert 'launchpad_rate_limit_block_total{kind="ip"} 1' in body


def test_rate_limit_allows_request_and_sets_headers(monkeypatch) -> None:
    monkeypatch.setattr(api_main.settings, "env", "production")
    monkeypatch.setattr(api_main.settings, "ip_rate_limit_enabled", True)
    monkeypatch.setattr(
        api_main,
        "get_ip_rate_limiter",
        lambda: _StaticLimiter(
            RateLimitDecision(
                allowed=True,
                limit=10,
                remaining=9,
                reset_seconds=60,
            )
        ),
    )

    client = TestClient(api_main.app)
    response = client.get("/version")

    assert response.status_code == 200
    assert response.headers["x-rate-limit-limit"] == "10"
    assert response.headers["x-rate-limit-remaining"] == "9"
    assert response.headers["x-rate-limit-reset"] == "60"


def test_in_memory_limiter_blocks_after_limit() -> None:
    limiter = InMemoryIPRateLimiter(requests_per_window=2, window_seconds=3600)

    first = limiter.check(ip="203.0.113.7")
    second = limiter.check(ip="203.0.113.7")
    third = limiter.check(ip="203.0.113.7")
    other = limiter.check(ip="198.51.100.1")

    assert first.allowed is True
    assert first.remaining == 1
    assert second.allowed is True
    assert third.allowed is False
    assert third.remaining == 0
    assert other.allowed is True


def test_redis_limiter_fails_open_when_redis_is_down() -> None:
    limiter = RedisIPRateLimiter(requests_per_window=5, window_seconds=60, redis_client=_UnavailableRedis())

    decision = limiter.check(ip="203.0.113.7")

    assert decision.allowed is True
    assert decision.remaining == 5
