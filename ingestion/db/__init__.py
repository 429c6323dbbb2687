"""Database utilities for the ingestion service."""

from .models import Base, NewsItem  # noqa: F401
from .session import get_engine, get_sessionmaker, reset_engine, session_scope  # noqa: F401

__all__ = [
    "Base",
    "NewsItem",
    "get_engine",
    "get_sessionmaker",
    "reset_engine",
    "session_scope",
]
