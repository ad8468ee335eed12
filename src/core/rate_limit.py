"""IP rate limiting for the public trigger endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from threading import Lock
import time
from typing import Dict, Protocol, Tuple

from redis import Redis
from redis.exceptions import RedisError

from src.core.config import get_settings
from src.storage.redis_client import get_client


RATE_LIMIT_KEY_TEMPLATE = "launchpad:ratelimit:ip:{ip}:{window_id}"


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int


class IPRateLimiter(Protocol):
    def check(self, *, ip: str) -> RateLimitDecision:
        """Return a decision for this IP."""


def _current_window(window_seconds: int) -> Tuple[int, int]:
    now = int(time.time())
    return now // window_seconds, window_seconds - (now % window_seconds)


def _decision(*, count: int, limit: int, reset_seconds: int) -> RateLimitDecision:
    return RateLimitDecision(
        allowed=count <= limit,
        limit=limit,
        remaining=max(limit - count, 0),
        reset_seconds=reset_seconds,
    )


class _FixedWindowLimiter:
    def __init__(self, *, requests_per_window: int, window_seconds: int) -> None:
        if requests_per_window <= 0:
            raise ValueError("requests_per_window must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self._limit = requests_per_window
        self._window = window_seconds


class InMemoryIPRateLimiter(_FixedWindowLimiter):
    def __init__(self, *, requests_per_window: int, window_seconds: int) -> None:
        super().__init__(requests_per_window=requests_per_window, window_seconds=window_seconds)
        self._lock = Lock()
        self._store: Dict[Tuple[str, int], int] = {}

    def check(self, *, ip: str) -> RateLimitDecision:
        window_id, reset_seconds = _current_window(self._window)

        with self._lock:
            # Keep current and previous windows only.
            for stale in [item for item in self._store if item[1] < window_id - 1]:
                self._store.pop(stale, None)
            count = self._store.get((ip, window_id), 0) + 1
            self._store[(ip, window_id)] = count

        return _decision(count=count, limit=self._limit, reset_seconds=reset_seconds)


class RedisIPRateLimiter(_FixedWindowLimiter):
    def __init__(self, *, requests_per_window: int, window_seconds: int, redis_client: Redis) -> None:
        super().__init__(requests_per_window=requests_per_window, window_seconds=window_seconds)
        self._redis = redis_client

    def check(self, *, ip: str) -> RateLimitDecision:
        window_id, reset_seconds = _current_window(self._window)
        key = RATE_LIMIT_KEY_TEMPLATE.format(ip=ip, window_id=window_id)

        try:
            count = int(self._redis.incr(key))
            if count == 1:
                self._redis.expire(key, self._window + 1)
        except RedisError:
            # Fail open when Redis is unreachable.
            return _decision(count=0, limit=self._limit, reset_seconds=reset_seconds)

        return _decision(count=count, limit=self._limit, reset_seconds=reset_seconds)


@lru_cache(maxsize=1)
def get_ip_rate_limiter() -> IPRateLimiter:
    settings = get_settings()

    if settings.env.lower() in {"prod", "production"}:
        return RedisIPRateLimiter(
            requests_per_window=settings.ip_rate_limit_requests_per_window,
            window_seconds=settings.ip_rate_limit_window_seconds,
            redis_client=get_client(),
        )
    return InMemoryIPRateLimiter(
        requests_per_window=settings.ip_rate_limit_requests_per_window,
        window_seconds=settings.ip_rate_limit_window_seconds,
    )
