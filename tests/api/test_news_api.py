from __future__ import annotations

from typing import List

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from ingestion.models.domain import FeedEntry
from ingestion.service import NewsService
from ingestion.services.queue import InMemoryQueue
from ingestion.tasks.collect import IngestionScheduler
from ingestion.tasks.enrich import EnrichmentWorker


class _NoFeed:
    url = "https://feeds.example.com/world.xml"

    def fetch_entries(self) -> List[FeedEntry]:
        return []


class _NoEnrichment:
    def enrich(self, link: str):
        return {}


@pytest.fixture()
def service(news_store) -> NewsService:
    queue = InMemoryQueue()
    scheduler = IngestionScheduler(_NoFeed(), news_store, queue, interval_seconds=3600)
    worker = EnrichmentWorker(news_store, queue, _NoEnrichment())
    return NewsService(news_store, queue, scheduler, worker)


@pytest.fixture()
def client(service):
    with TestClient(create_app(service, run_pipeline=False)) as test_client:
        yield test_client


def _ingest(service: NewsService, count: int) -> None:
    service.scheduler.ingest_entries(
        [FeedEntry(title=f"Story {i}", link=f"https://news.example.com/{i}") for i in range(1, count + 1)]
    )


def test_list_news_first_page(service, client):
    _ingest(service, 7)

    resp = client.get("/api/news", params={"page": 1, "pagesize": 5})

    assert resp.status_code == 200
    body = resp.json()
    assert [item["title"] for item in body["news"]] == [f"Story {i}" for i in range(1, 6)]
    assert body["metadata"] == {
        "current_page": 1,
        "page_size": 5,
        "first_page": 1,
        "last_page": 2,
        "total_records": 7,
    }


def test_list_news_last_page(service, client):
    _ingest(service, 7)

    body = client.get("/api/news", params={"page": 2, "pagesize": 5}).json()

    assert [item["link"] for item in body["news"]] == ["https://news.example.com/6", "https://news.example.com/7"]
    assert body["metadata"]["current_page"] == 2
    assert body["metadata"]["total_records"] == 7


def test_page_past_the_end_returns_empty_metadata(service, client):
    _ingest(service, 7)

    body = client.get("/api/news", params={"page": 3, "pagesize": 5}).json()

    assert body["news"] == []
    assert body["metadata"] == {
        "current_page": 0,
        "page_size": 0,
        "first_page": 0,
        "last_page": 0,
        "total_records": 0,
    }


@pytest.mark.parametrize(
    "params",
    [{}, {"page": "abc", "pagesize": "xyz"}, {"page": "0", "pagesize": "-2"}],
)
def test_invalid_paging_falls_back_to_defaults(service, client, params):
    _ingest(service, 7)

    body = client.get("/api/news", params=params).json()

    assert len(body["news"]) == 5
    assert body["metadata"]["current_page"] == 1
    assert body["metadata"]["page_size"] == 5


def test_empty_store_lists_nothing(client):
    body = client.get("/api/news").json()

    assert body["news"] == []
    assert body["metadata"]["total_records"] == 0


def test_get_single_news(service, client):
    _ingest(service, 2)
    news_id = client.get("/api/news").json()["news"][1]["id"]

    resp = client.get(f"/api/news/{news_id}")

    assert resp.status_code == 200
    body = resp.json()
    assert body["title"] == "Story 2"
    assert body["link"] == "https://news.example.com/2"
    assert body["description"] == ""
    assert body["published"] is not None


def test_get_missing_news_returns_404(client):
    resp = client.get("/api/news/999")

    assert resp.status_code == 404
    assert resp.json()["detail"] == "News item not found."


@pytest.mark.parametrize("news_id", ["abc", str(2**63)])
def test_get_news_rejects_bad_ids(client, news_id):
    assert client.get(f"/api/news/{news_id}").status_code == 422


def test_healthcheck_without_pipeline(client):
    resp = client.get("/healthz")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "ingestion": "disabled", "enrichment": "disabled"}


class _StubService:
    """Pipeline stand-in whose task liveness is set by the test."""

    def __init__(self, store, *, ingestion_running: bool, enrichment_running: bool) -> None:
        self.store = store
        self.ingestion_running = ingestion_running
        self.enrichment_running = enrichment_running
        self.started = False
        self.stopped = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True


@pytest.mark.parametrize(
    "ingestion_running, enrichment_running, expected",
    [
        (True, True, {"status": "ok", "ingestion": "running", "enrichment": "running"}),
        (True, False, {"status": "degraded", "ingestion": "running", "enrichment": "stopped"}),
        (False, True, {"status": "degraded", "ingestion": "stopped", "enrichment": "running"}),
    ],
)
def test_healthcheck_reports_each_task(news_store, ingestion_running, enrichment_running, expected):
    stub = _StubService(news_store, ingestion_running=ingestion_running, enrichment_running=enrichment_running)

    with TestClient(create_app(stub, run_pipeline=True)) as test_client:
        assert test_client.get("/healthz").json() == expected

    assert stub.started and stub.stopped
