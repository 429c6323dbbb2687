"""Session helpers for the ingestion database."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ingestion.settings import Settings, get_settings

_ENGINE: Engine | None = None
_SESSIONMAKER: sessionmaker[Session] | None = None
_CURRENT_DSN: str | None = None


def build_engine(dsn: str) -> Engine:
    """Create an engine usable from the scheduler, worker and API threads."""
    connect_args: Dict[str, Any] = {}
    if dsn.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(dsn, future=True, pool_pre_ping=True, connect_args=connect_args)


def build_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False, autoflush=False, future=True)


def get_engine(settings: Settings | None = None) -> Engine:
    """Return a memoized SQLAlchemy engine."""
    global _ENGINE, _SESSIONMAKER, _CURRENT_DSN

    config = settings or get_settings()
    if _ENGINE is None or _CURRENT_DSN != config.postgres_dsn:
        _ENGINE = build_engine(config.postgres_dsn)
        _SESSIONMAKER = build_sessionmaker(_ENGINE)
        _CURRENT_DSN = config.postgres_dsn
    return _ENGINE


def get_sessionmaker(settings: Settings | None = None) -> sessionmaker[Session]:
    """Return a memoized sessionmaker."""
    get_engine(settings)
    assert _SESSIONMAKER is not None  # for mypy
    return _SESSIONMAKER


def reset_engine() -> None:
    """Dispose the memoized engine (shutdown and tests)."""
    global _ENGINE, _SESSIONMAKER, _CURRENT_DSN
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _SESSIONMAKER = None
    _CURRENT_DSN = None


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """Provide a transactional scope for DB operations."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
