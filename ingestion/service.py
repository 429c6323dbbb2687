"""Wires the scheduler and the enrichment worker to the store and queue."""

from __future__ import annotations

import threading
from typing import Callable, List, Optional

from ingestion.connectors.base import HttpFetcher
from ingestion.connectors.rss import RSSConnector
from ingestion.repositories.news import NewsStore
from ingestion.services.cancellation import CancellationToken
from ingestion.services.extractor import PageEnricher
from ingestion.services.queue import MessageQueue, RedisQueue
from ingestion.settings import Settings
from ingestion.tasks.collect import IngestionScheduler, RetryPolicy
from ingestion.tasks.enrich import EnrichmentWorker
from ingestion.utils.logging import get_logger

logger = get_logger(__name__)


class NewsService:
    """Owns the pipeline's long-running tasks and shared resources."""

    def __init__(
        self,
        store: NewsStore,
        queue: MessageQueue,
        scheduler: IngestionScheduler,
        worker: EnrichmentWorker,
        *,
        fetcher: Optional[HttpFetcher] = None,
    ) -> None:
        self.store = store
        self.queue = queue
        self.scheduler = scheduler
        self.worker = worker
        self._fetcher = fetcher
        self._token: Optional[CancellationToken] = None
        self._threads: List[threading.Thread] = []
        self.ingestion_failure: Optional[BaseException] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        store: Optional[NewsStore] = None,
        queue: Optional[MessageQueue] = None,
        fetcher: Optional[HttpFetcher] = None,
    ) -> "NewsService":
        fetcher = fetcher or HttpFetcher(
            timeout=settings.fetch_timeout_seconds,
            user_agent=settings.fetch_user_agent,
        )
        store = store or NewsStore.from_settings(settings)
        queue = queue or RedisQueue.from_url(
            settings.redis_url,
            name=settings.queue_name,
            poll_seconds=settings.queue_poll_seconds,
        )
        scheduler = IngestionScheduler(
            RSSConnector(settings.feed_url, fetcher),
            store,
            queue,
            interval_seconds=settings.feed_ttl_seconds,
            policy=RetryPolicy.from_settings(settings),
        )
        worker = EnrichmentWorker(store, queue, PageEnricher(fetcher))
        return cls(store, queue, scheduler, worker, fetcher=fetcher)

    @property
    def ingestion_running(self) -> bool:
        return self._alive(0)

    @property
    def enrichment_running(self) -> bool:
        return self._alive(1)

    def _alive(self, index: int) -> bool:
        return len(self._threads) > index and self._threads[index].is_alive()

    def start(self, token: Optional[CancellationToken] = None) -> CancellationToken:
        """Launch scheduler and worker in background threads."""
        self._token = token or CancellationToken()
        self._threads = [
            self._spawn("ingestion-scheduler", self.scheduler.run, record_failure=True),
            self._spawn("enrichment-worker", self.worker.run),
        ]
        return self._token

    def stop(self, timeout: float = 10.0) -> None:
        """Cancel both tasks, wait for them, then release resources."""
        if self._token is not None:
            self._token.cancel()
        for thread in self._threads:
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("service.thread_still_running", extra={"task": thread.name})
        self.close()

    def close(self) -> None:
        """Close queue and store; failures are logged, never raised."""
        closers: List[tuple[str, Callable[[], None]]] = [("queue", self.queue.close), ("store", self.store.close)]
        if self._fetcher is not None:
            closers.append(("fetcher", self._fetcher.close))
        for resource, close in closers:
            try:
                close()
            except Exception as exc:  # shutdown must continue past a dead resource
                logger.error("service.close_failed", extra={"resource": resource, "error": str(exc)})

    def _spawn(self, thread_name: str, target, *, record_failure: bool = False) -> threading.Thread:
        assert self._token is not None
        token = self._token

        def _run() -> None:
            try:
                target(token)
            except Exception as exc:
                logger.exception("service.task_failed", extra={"task": thread_name})
                if record_failure:
                    self.ingestion_failure = exc

        thread = threading.Thread(target=_run, name=thread_name, daemon=True)
        thread.start()
        return thread
