"""Shared Redis connection for the IP rate limiter and the health check."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional, Tuple

from redis import Redis

from src.core.config import get_settings


@lru_cache(maxsize=1)
def get_client() -> Redis:
    settings = get_settings()
    return Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=settings.redis_socket_timeout_seconds,
        socket_timeout=settings.redis_socket_timeout_seconds,
        health_check_interval=30,
    )


def test_connection() -> Tuple[bool, Optional[str]]:
    try:
        if not get_client().ping():
            return False, "redis ping returned false"
        return True, None
    except Exception as exc:  # pragma: no cover
        return False, str(exc)
