"""SQLAlchemy engine and read-only connections.

One shared engine with connection pooling.  Every report query borrows its
own pooled connection, opens a READ ONLY transaction on it and returns it
to the pool on exit.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine

from report_copilot.core.config import get_settings
from report_copilot.core.logging import get_logger

logger = get_logger(__name__)

_engine: Engine | None = None


def get_engine() -> Engine:
    """Return the shared SQLAlchemy engine (lazy-created, cached)."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_engine(
            settings.database_url,
            pool_pre_ping=True,
            pool_size=settings.query_max_workers,
            max_overflow=10,
            echo=False,
        )
        logger.info("DB engine created  host=%s  db=%s", settings.postgres_host, settings.postgres_db)
    return _engine


def dispose_engine() -> None:
    """Close pooled connections and forget the engine (called on API shutdown)."""
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None
        logger.info("DB engine disposed")


@contextmanager
def readonly_connection(timeout_ms: int | None = None) -> Generator[Connection, None, None]:
    """Yield a connection inside a READ ONLY transaction.

    Postgres rejects any write attempted on it, whatever the SQL says.
    The transaction is rolled back and the connection returned on exit.
    """
    if timeout_ms is None:
        timeout_ms = get_settings().query_timeout_ms
    with get_engine().connect() as conn:
        trans = conn.begin()
        try:
            conn.execute(text("SET TRANSACTION READ ONLY"))
            conn.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))
            yield conn
        finally:
            trans.rollback()
