"""
Direct database access used only to provision the schema for local
development; runtime reads and writes go through the Supabase gateway.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import AppConfig

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_scoped_session: scoped_session | None = None


def init_engine(config: AppConfig, database_url: str | None = None) -> Engine:
    """
    Initialize the module-level engine and session factory.

    Raises:
        RuntimeError: If no database URL is configured
    """
    global _engine, _scoped_session

    if _engine is None:
        database_url = database_url or config.database_url
        if not database_url:
            raise RuntimeError("DATABASE_URL must be configured to provision the schema")

        engine_kwargs: dict[str, Any] = {"pool_pre_ping": True, "future": True}
        if database_url.startswith("sqlite"):
            engine_kwargs.update(
                {
                    "connect_args": {"check_same_thread": False},
                    "poolclass": StaticPool,
                    "pool_pre_ping": False,
                }
            )

        _engine = create_engine(database_url, **engine_kwargs)
        _scoped_session = scoped_session(
            sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False)
        )

    return _engine


def dispose_engine() -> None:
    global _engine, _scoped_session
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _scoped_session = None


def init_db(metadata) -> list[str]:
    """
    Create every table declared on ``metadata`` that does not exist yet.

    Returns the table names present afterwards.
    """
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call init_engine first.")

    try:
        metadata.create_all(_engine)
        logger.info("Database schema created successfully")
    except OperationalError as exc:
        logger.warning("Schema creation warning: %s", exc)

    return sorted(inspect(_engine).get_table_names())


@contextmanager
def get_session() -> Iterator[Session]:
    """
    Provide a transactional scope around a series of operations.

    Commits on success, rolls back on error and always removes the session
    from the scoped registry.
    """
    if _scoped_session is None:
        raise RuntimeError("Session factory unavailable. Call init_engine first.")

    session: Session = _scoped_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        _scoped_session.remove()
