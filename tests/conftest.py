from __future__ import annotations

import json
from typing import Callable, List

import httpx
import pytest
from sqlalchemy.orm import Session, sessionmaker

from src.automations.catalog import reset_automation_catalog_cache
from src.core.config import get_settings
from src.core.metrics import reset_metrics_for_tests
from src.integrations.n8n.client import N8nClient
from src.storage.db import Base, build_engine, load_models


N8N_TEST_BASE_URL = "http://n8n.test"


class RecordingTransport:
    """httpx transport that records every request and answers from a callback."""

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response] | None = None) -> None:
        self.requests: List[httpx.Request] = []
        self._responder = responder or (lambda request: httpx.Response(200, json={"ok": True}))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)

    def json_bodies(self) -> List[dict]:
        return [json.loads(request.content or b"{}") for request in self.requests]

    def paths(self) -> List[str]:
        return [request.url.path for request in self.requests]


def build_n8n_client(transport: RecordingTransport, *, api_key: str = "test-n8n-key") -> N8nClient:
    return N8nClient(
        base_url=N8N_TEST_BASE_URL,
        api_key=api_key,
        client=httpx.Client(transport=httpx.MockTransport(transport)),
    )


def build_sqlite_session_factory(session_class: type = Session) -> sessionmaker:
    load_models()
    engine = build_engine("sqlite+pysqlite://")
    Base.metadata.create_all(engine)
    return sessionmaker(
        bind=engine,
        class_=session_class,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )


@pytest.fixture(autouse=True)
def _reset_process_state():
    reset_metrics_for_tests()
    reset_automation_catalog_cache()
    yield
    reset_automation_catalog_cache()


@pytest.fixture
def session_factory() -> sessionmaker:
    return build_sqlite_session_factory()


@pytest.fixture
def settings_cache_guard():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
