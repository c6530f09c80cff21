"""Engine and request-scoped sessions for the update database."""

from __future__ import annotations

from collections.abc import Generator
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from apps.api.app.core.config import get_settings


@lru_cache
def _engine_for(database_url: str) -> Engine:
    return create_engine(database_url, pool_pre_ping=True)


def get_engine() -> Engine:
    """Return the pooled engine for the configured database URL.

    Update checks open a session per request, so the engine (and its pool)
    is shared for as long as the URL stays the same.
    """
    return _engine_for(get_settings().database_url)


def get_session_factory() -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)


def get_db_session() -> Generator[Session, None, None]:
    with get_session_factory()() as session:
        yield session
