"""Store for news items: dedup-on-write, lookups, enrichment updates, paging."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List, Optional, Tuple

from sqlalchemy import func, select, text, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ingestion.db.models import Base, NewsItem
from ingestion.db.session import build_sessionmaker, get_engine, get_sessionmaker, session_scope
from ingestion.models.domain import Filters, NewsItemDTO
from ingestion.settings import Settings


class StoreError(Exception):
    """Unclassified persistence failure."""


class Conflict(StoreError):
    """An item with the same link already exists."""


class NotFound(StoreError):
    """No item matched the id/link."""


class NewsStore:
    """CRUD boundary over the ``news`` table.

    Every call opens its own short transaction, so one store can be shared by
    the scheduler, the worker and the API. ``timeout`` is the per-call
    deadline in seconds, applied as ``statement_timeout`` on PostgreSQL.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        sessions: Optional[sessionmaker[Session]] = None,
        default_timeout: Optional[float] = None,
    ) -> None:
        self._engine = engine
        self._sessions = sessions or build_sessionmaker(engine)
        self._default_timeout = default_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "NewsStore":
        return cls(
            get_engine(settings),
            sessions=get_sessionmaker(settings),
            default_timeout=settings.store_timeout_seconds,
        )

    @property
    def engine(self) -> Engine:
        return self._engine

    def ensure_schema(self) -> None:
        Base.metadata.create_all(bind=self._engine)

    def create(self, item: NewsItemDTO, *, timeout: Optional[float] = None) -> int:
        """Insert a new item and return its id; duplicate links raise ``Conflict``."""
        if not item.title.strip() or not item.link.strip():
            raise StoreError("item is empty")

        row = NewsItem(title=item.title, link=item.link)
        if item.published is not None:
            row.published = item.published
        with self._scope(timeout) as session:
            session.add(row)
            session.flush()
            new_id = row.id
        item.id = new_id
        return new_id

    def get_by_link(self, link: str, *, timeout: Optional[float] = None) -> NewsItemDTO:
        with self._scope(timeout) as session:
            row = session.scalar(select(NewsItem).where(NewsItem.link == link))
            if row is None:
                raise NotFound(f"no item with link {link!r}")
            return NewsItemDTO.model_validate(row)

    def get_by_id(self, item_id: int, *, timeout: Optional[float] = None) -> NewsItemDTO:
        with self._scope(timeout) as session:
            row = session.get(NewsItem, item_id)
            if row is None:
                raise NotFound(f"no item with id {item_id}")
            return NewsItemDTO.model_validate(row)

    def update(self, item: NewsItemDTO, *, timeout: Optional[float] = None) -> None:
        with self._scope(timeout) as session:
            result = session.execute(
                update(NewsItem)
                .where(NewsItem.id == item.id)
                .values(
                    title=item.title,
                    link=item.link,
                    description=item.description,
                    image=item.image,
                )
            )
            if result.rowcount == 0:
                raise NotFound(f"no item with id {item.id}")

    def list_page(self, filters: Filters, *, timeout: Optional[float] = None) -> Tuple[List[NewsItemDTO], int]:
        """Return one page (newest first) plus the total row count.

        The total comes from a window count over the same query, so a page
        past the end returns no rows and a total of 0.
        """
        stmt = (
            select(NewsItem, func.count().over().label("total"))
            .order_by(NewsItem.published.desc(), NewsItem.id.asc())
            .limit(filters.limit)
            .offset(filters.offset)
        )
        with self._scope(timeout) as session:
            rows = session.execute(stmt).all()
            total = rows[0][1] if rows else 0
            return [NewsItemDTO.model_validate(row[0]) for row in rows], total

    def count(self, *, timeout: Optional[float] = None) -> int:
        with self._scope(timeout) as session:
            return session.scalar(select(func.count()).select_from(NewsItem)) or 0

    def close(self) -> None:
        self._engine.dispose()

    @contextmanager
    def _scope(self, timeout: Optional[float]) -> Iterator[Session]:
        try:
            with session_scope(self._sessions) as session:
                self._apply_deadline(session, timeout if timeout is not None else self._default_timeout)
                yield session
        except IntegrityError as exc:
            raise Conflict("item already exists") from exc
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    @staticmethod
    def _apply_deadline(session: Session, timeout: Optional[float]) -> None:
        if not timeout or session.get_bind().dialect.name != "postgresql":
            return
        session.execute(
            text("SELECT set_config('statement_timeout', :ms, true)"),
            {"ms": str(int(timeout * 1000))},
        )
