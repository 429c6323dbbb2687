from __future__ import annotations

import logging
from typing import Dict, List, Union

from ingestion.connectors.base import FetchError
from ingestion.models.domain import ENRICHABLE_FIELDS, NewsItemDTO
from ingestion.services.cancellation import CancellationToken
from ingestion.services.queue import InMemoryQueue
from ingestion.tasks.enrich import EnrichmentWorker, enrich_news_item


class FakeEnricher:
    def __init__(self, results: Dict[str, Union[Dict[str, str], Exception]]) -> None:
        self._results = results
        self.links: List[str] = []

    def enrich(self, link: str) -> Dict[str, str]:
        self.links.append(link)
        result = self._results.get(link, {})
        if isinstance(result, Exception):
            raise result
        return dict(result)


def _seed(store, index: int, **fields) -> NewsItemDTO:
    item = NewsItemDTO(title=f"Story {index}", link=f"https://news.example.com/{index}")
    store.create(item)
    if fields:
        for key, value in fields.items():
            setattr(item, key, value)
        store.update(item)
    return item


def test_enrich_news_item_updates_store(news_store):
    item = _seed(news_store, 1)
    enricher = FakeEnricher({item.link: {"description": "Summary", "image": "https://img.example.com/1.jpg"}})

    applied = enrich_news_item(news_store, enricher, item.link)

    stored = news_store.get_by_id(item.id)
    assert applied == 2
    assert stored.description == "Summary"
    assert stored.image == "https://img.example.com/1.jpg"


def test_merge_never_clears_existing_fields(news_store):
    item = _seed(news_store, 1, description="Original summary")
    enricher = FakeEnricher({item.link: {"image": "https://img.example.com/1.jpg", "description": "  "}})

    applied = enrich_news_item(news_store, enricher, item.link)

    stored = news_store.get_by_id(item.id)
    assert applied == 1
    assert stored.description == "Original summary"
    assert stored.image == "https://img.example.com/1.jpg"


def test_merge_ignores_fields_without_a_column():
    item = NewsItemDTO(title="Story", link="https://news.example.com/1")

    applied = item.merge_enrichments({"author": "Desk", "image": "https://img.example.com/1.jpg"})

    assert applied == 1
    assert item.image == "https://img.example.com/1.jpg"
    assert "author" not in item.model_dump()
    assert set(ENRICHABLE_FIELDS) == {"description", "image"}


def test_handle_unknown_link_is_skipped(news_store, caplog):
    worker = EnrichmentWorker(news_store, InMemoryQueue(), FakeEnricher({}))

    with caplog.at_level(logging.WARNING):
        handled = worker.handle(b"https://news.example.com/unknown")

    assert handled is False
    assert any(record.getMessage() == "enrich.not_found" for record in caplog.records)


def test_handle_fetch_failure_leaves_item_untouched(news_store):
    item = _seed(news_store, 1)
    worker = EnrichmentWorker(news_store, InMemoryQueue(), FakeEnricher({item.link: FetchError("404")}))

    assert worker.handle(item.link.encode()) is False

    stored = news_store.get_by_id(item.id)
    assert stored.description == ""
    assert stored.image == ""


def test_handle_empty_payload(news_store):
    enricher = FakeEnricher({})
    worker = EnrichmentWorker(news_store, InMemoryQueue(), enricher)

    assert worker.handle(b"   ") is False
    assert enricher.links == []


def test_worker_processes_messages_in_order_until_queue_closes(news_store):
    first = _seed(news_store, 1)
    second = _seed(news_store, 2)
    queue = InMemoryQueue(poll_seconds=0.01)
    enricher = FakeEnricher(
        {
            first.link: {"description": "First"},
            second.link: {"description": "Second"},
        }
    )
    worker = EnrichmentWorker(news_store, queue, enricher)
    queue.publish(first.link.encode())
    queue.publish(b"https://news.example.com/gone")
    queue.publish(second.link.encode())
    queue.close()

    worker.run(CancellationToken())

    assert worker.processed == 3
    assert enricher.links == [first.link, second.link]
    assert news_store.get_by_id(first.id).description == "First"
    assert news_store.get_by_id(second.id).description == "Second"


def test_worker_stops_when_cancelled(news_store):
    queue = InMemoryQueue(poll_seconds=0.01)
    worker = EnrichmentWorker(news_store, queue, FakeEnricher({}))
    token = CancellationToken()
    token.cancel()

    worker.run(token)

    assert worker.processed == 0
