"""Queue-driven enrichment of stored news items."""

from __future__ import annotations

from typing import Protocol

from ingestion.connectors.base import FetchError
from ingestion.models.domain import EnrichmentResult
from ingestion.repositories.news import NewsStore, NotFound, StoreError
from ingestion.services.cancellation import CancellationToken
from ingestion.services.queue import MessageQueue
from ingestion.utils.logging import get_logger

logger = get_logger(__name__)


class Enricher(Protocol):
    def enrich(self, link: str) -> EnrichmentResult: ...


def enrich_news_item(store: NewsStore, enricher: Enricher, link: str) -> int:
    """Load the item by link, scrape its page and write the fields back.

    Returns the number of fields applied. Raises ``NotFound``, ``FetchError``
    or ``StoreError`` for the caller to handle.
    """
    item = store.get_by_link(link)
    enrichments = enricher.enrich(link)
    applied = item.merge_enrichments(enrichments)
    logger.debug("enrich.applied", extra={"item_id": item.id, "applied": applied})
    store.update(item)
    return applied


class EnrichmentWorker:
    """Consumes published links one at a time, in delivery order."""

    def __init__(self, store: NewsStore, queue: MessageQueue, enricher: Enricher) -> None:
        self._store = store
        self._queue = queue
        self._enricher = enricher
        self.processed = 0

    def run(self, token: CancellationToken) -> None:
        logger.info("enrich.start")
        for payload in self._queue.consume(token):
            self.handle(payload)
        logger.info("enrich.stopped", extra={"processed": self.processed})

    def handle(self, payload: bytes) -> bool:
        """Enrich a single message; failures are logged and never propagate."""
        self.processed += 1
        link = payload.decode("utf-8", errors="replace").strip()
        if not link:
            logger.warning("enrich.empty_message")
            return False
        try:
            enrich_news_item(self._store, self._enricher, link)
        except NotFound as exc:
            logger.warning("enrich.not_found", extra={"link": link, "error": str(exc)})
            return False
        except FetchError as exc:
            logger.warning("enrich.fetch_failed", extra={"link": link, "error": str(exc)})
            return False
        except StoreError as exc:
            logger.error("enrich.store_failed", extra={"link": link, "error": str(exc)})
            return False
        return True
