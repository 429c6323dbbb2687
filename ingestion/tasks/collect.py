"""Scheduled feed collection: fetch, decode, dedup-on-write, publish."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Protocol

from ingestion.connectors.base import ConnectorError
from ingestion.models.domain import FeedEntry, NewsItemDTO
from ingestion.repositories.news import Conflict, NewsStore, StoreError
from ingestion.services.cancellation import CancellationToken
from ingestion.services.queue import MessageQueue, PublishError
from ingestion.settings import Settings
from ingestion.utils.logging import get_logger

logger = get_logger(__name__)


class Connector(Protocol):
    url: str

    def fetch_entries(self) -> List[FeedEntry]: ...


class SchedulerState(str, Enum):
    POLLING = "polling"
    BACKING_OFF = "backing_off"
    STOPPED = "stopped"


class IngestionAborted(Exception):
    """Retries exhausted; the scheduler has stopped for good."""


@dataclass(frozen=True)
class RetryPolicy:
    """Retry/backoff behaviour for failed polls.

    The failure counter is checked before it is incremented, so with
    ``max_retries=3`` a run backs off four times and gives up on the fifth
    consecutive failure. ``abort_on_exhaustion=False`` skips the cycle
    instead of stopping ingestion.
    """

    max_retries: int = 3
    backoff_seconds: float = 30.0
    abort_on_exhaustion: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_retries=settings.ingestion_max_retries,
            backoff_seconds=settings.ingestion_backoff_seconds,
            abort_on_exhaustion=settings.ingestion_abort_on_exhaustion,
        )


@dataclass
class CycleStats:
    fetched: int = 0
    saved: int = 0
    skipped: int = 0
    failed: int = 0
    published: int = 0


class IngestionScheduler:
    """Timer-driven ingestion loop with states polling/backing_off/stopped."""

    def __init__(
        self,
        connector: Connector,
        store: NewsStore,
        queue: MessageQueue,
        *,
        interval_seconds: float,
        policy: RetryPolicy = RetryPolicy(),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._connector = connector
        self._store = store
        self._queue = queue
        self._interval = interval_seconds
        self._policy = policy
        self._clock = clock
        self.state = SchedulerState.STOPPED
        self.last_stats: CycleStats | None = None

    def run(self, token: CancellationToken) -> None:
        """Poll until cancelled; raises ``IngestionAborted`` when retries run out."""
        logger.info("ingest.start", extra={"feed_url": self._connector.url, "interval": self._interval})
        retry = 0
        next_tick = self._clock() + self._interval
        self.state = SchedulerState.POLLING

        while not token.cancelled:
            try:
                entries = self._connector.fetch_entries()
            except ConnectorError as exc:
                if retry > self._policy.max_retries:
                    logger.error(
                        "ingest.retries_exhausted",
                        extra={"feed_url": self._connector.url, "retries": retry, "error": str(exc)},
                    )
                    if self._policy.abort_on_exhaustion:
                        self.state = SchedulerState.STOPPED
                        raise IngestionAborted(f"feed unavailable after {retry} retries: {exc}") from exc
                    retry = 0
                else:
                    retry += 1
                    logger.warning(
                        "ingest.backoff",
                        extra={
                            "feed_url": self._connector.url,
                            "retry": retry,
                            "limit": self._policy.max_retries,
                            "error": str(exc),
                        },
                    )
                    self.state = SchedulerState.BACKING_OFF
                    if token.wait(self._policy.backoff_seconds):
                        break
                    self.state = SchedulerState.POLLING
                    continue
            else:
                retry = 0
                self.last_stats = self.ingest_entries(entries)

            delay, next_tick = self._until_next_tick(next_tick)
            if token.wait(delay):
                break

        self.state = SchedulerState.STOPPED
        logger.info("ingest.stopped", extra={"feed_url": self._connector.url})

    def ingest_entries(self, entries: List[FeedEntry]) -> CycleStats:
        """Persist new entries and publish their links; one bad item never stops the cycle."""
        stats = CycleStats(fetched=len(entries))
        published_at = datetime.now(timezone.utc)
        for entry in entries:
            item = NewsItemDTO(title=entry.title, link=entry.link, published=published_at)
            try:
                self._store.create(item)
            except Conflict:
                logger.debug("ingest.duplicate", extra={"link": entry.link})
                stats.skipped += 1
                continue
            except StoreError as exc:
                logger.error("ingest.save_failed", extra={"link": entry.link, "error": str(exc)})
                stats.failed += 1
                continue
            stats.saved += 1

            try:
                self._queue.publish(item.link.encode("utf-8"))
            except PublishError as exc:
                logger.error("ingest.publish_failed", extra={"link": item.link, "error": str(exc)})
                continue
            stats.published += 1

        logger.info(
            "ingest.saved",
            extra={
                "feed_url": self._connector.url,
                "fetched": stats.fetched,
                "saved": stats.saved,
                "skipped": stats.skipped,
                "failed": stats.failed,
            },
        )
        return stats

    def _until_next_tick(self, next_tick: float) -> tuple[float, float]:
        # fixed-rate ticks; missed ticks collapse into one immediate run
        now = self._clock()
        if next_tick > now:
            return next_tick - now, next_tick + self._interval
        while next_tick <= now:
            next_tick += self._interval
        return 0.0, next_tick
