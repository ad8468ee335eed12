"""Database engine and per-request sessions for the products/runs/outbox tables."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, Generator, Optional, Tuple

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from src.core.config import get_settings


Base = declarative_base()


def _is_memory_sqlite(database_url: str) -> bool:
    url = make_url(database_url)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def build_engine(database_url: str, *, application_name: Optional[str] = None) -> Engine:
    """Create an engine tuned for the backend named in ``database_url``.

    An in-memory SQLite database only lives as long as its connection, so it is
    pinned to a single shared connection. Postgres connections are tagged with
    the application name, which shows up in ``pg_stat_activity`` on Supabase.
    """

    kwargs: Dict[str, Any] = {"pool_pre_ping": True, "future": True}
    backend = make_url(database_url).get_backend_name()

    if backend == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_sqlite(database_url):
            kwargs["poolclass"] = StaticPool
    elif backend == "postgresql" and application_name:
        kwargs["connect_args"] = {"application_name": application_name}

    return create_engine(database_url, **kwargs)


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    settings = get_settings()
    return build_engine(settings.database_url, application_name=settings.app_name)


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    return sessionmaker(bind=get_engine(), autoflush=False, autocommit=False, expire_on_commit=False)


def get_session() -> Generator[Session, None, None]:
    """FastAPI dependency yielding one session per request.

    Work left uncommitted by a failing handler is rolled back before the
    connection goes back to the pool.
    """

    session = get_session_factory()()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def test_connection() -> Tuple[bool, Optional[str]]:
    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
        return True, None
    except Exception as exc:  # pragma: no cover
        return False, str(exc)


def load_models() -> None:
    import src.storage.models  # noqa: F401
