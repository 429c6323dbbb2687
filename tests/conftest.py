from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ingestion.db.session import build_engine  # noqa: E402
from ingestion.repositories.news import NewsStore  # noqa: E402


@pytest.fixture()
def news_store(tmp_path: Path):
    store = NewsStore(build_engine(f"sqlite:///{tmp_path / 'news.db'}"))
    store.ensure_schema()
    yield store
    store.close()
