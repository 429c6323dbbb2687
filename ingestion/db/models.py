"""SQLAlchemy models for ingested news."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Index, Integer, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for ORM models."""


class NewsItem(Base):
    """One feed item; ``link`` is the natural key."""

    __tablename__ = "news"
    __table_args__ = (Index("ix_news_published", "published"),)

    # BIGINT on PostgreSQL, INTEGER on SQLite so rowid autoincrement still applies
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    published: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    link: Mapped[str] = mapped_column(Text, nullable=False, unique=True, server_default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    image: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
