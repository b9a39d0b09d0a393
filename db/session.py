"""
db/session.py

Lazily created engine and session factory.

Nothing connects at import time, so CLI tools and tests can import the
repositories without a database.
"""

from __future__ import annotations

import logging
from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import capture_concurrency, resolve_database_url, resolve_pool_settings

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def create_db_engine() -> Engine:
    from app.config import get_vrt_settings

    vrt = get_vrt_settings()
    pool = resolve_pool_settings(
        capture_concurrency(
            capture_mode=vrt.capture_mode,
            batch_size=vrt.batch_size,
            max_browser_contexts=vrt.max_browser_contexts,
        )
    )
    logger.info(
        "Creating database engine pool_size=%d max_overflow=%d capture_mode=%s",
        pool.pool_size,
        pool.max_overflow,
        vrt.capture_mode,
    )
    return create_engine(
        resolve_database_url(),
        echo=pool.echo,
        pool_pre_ping=True,
        pool_recycle=pool.pool_recycle,
        pool_size=pool.pool_size,
        max_overflow=pool.max_overflow,
    )


def get_engine() -> Engine:
    """Return the shared engine, creating it on first call."""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def SessionLocal() -> Session:
    """Session factory callable; stores and scheduler jobs take this as `session_factory`."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            class_=Session,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_factory()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
