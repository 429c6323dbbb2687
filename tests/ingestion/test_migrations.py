from __future__ import annotations

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from ingestion.db.session import build_engine
from ingestion.models.domain import NewsItemDTO
from ingestion.repositories.news import Conflict, NewsStore

ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture()
def sqlite_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'news.db'}"


def _config(db_url: str) -> Config:
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "ingestion" / "db" / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    cfg.attributes["configure_logger"] = False
    return cfg


def test_migrations_create_news_table(sqlite_url: str) -> None:
    command.upgrade(_config(sqlite_url), "head")
    inspector = inspect(create_engine(sqlite_url, future=True))

    assert "news" in inspector.get_table_names()
    columns = {column["name"] for column in inspector.get_columns("news")}
    assert {"id", "title", "published", "link", "description", "image"} <= columns
    indexes = {index["name"] for index in inspector.get_indexes("news")}
    assert "ix_news_published" in indexes


def test_migrated_schema_enforces_unique_links(sqlite_url: str) -> None:
    command.upgrade(_config(sqlite_url), "head")
    store = NewsStore(build_engine(sqlite_url))
    try:
        first = NewsItemDTO(title="Story", link="https://news.example.com/1")
        assert store.create(first) == 1
        assert store.get_by_id(1).published is not None

        with pytest.raises(Conflict):
            store.create(NewsItemDTO(title="Again", link="https://news.example.com/1"))
    finally:
        store.close()


def test_downgrade_drops_news_table(sqlite_url: str) -> None:
    cfg = _config(sqlite_url)
    command.upgrade(cfg, "head")
    command.downgrade(cfg, "base")

    inspector = inspect(create_engine(sqlite_url, future=True))
    assert "news" not in inspector.get_table_names()
