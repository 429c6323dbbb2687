"""News link queue with pluggable transport (Redis-like).

Contract: an ordered, at-least-once stream of opaque byte payloads. Messages
are acknowledged on receipt, so a consumer crash between receive and
processing drops that message.
"""

from __future__ import annotations

import queue as _stdqueue
import threading
from typing import Iterator, List, Optional, Protocol, Sequence, Tuple

import redis
from redis.exceptions import RedisError

from ingestion.services.cancellation import CancellationToken
from ingestion.utils.logging import get_logger

logger = get_logger(__name__)


class QueueError(Exception):
    """Base queue error."""


class PublishError(QueueError):
    """Queue unavailable while publishing."""


class MessageQueue(Protocol):
    def publish(self, payload: bytes) -> None: ...
    def consume(self, token: CancellationToken) -> Iterator[bytes]: ...
    def close(self) -> None: ...


_CLOSED = object()


class InMemoryQueue:
    """Thread-safe in-process queue for tests/local runs."""

    def __init__(self, *, poll_seconds: float = 0.05) -> None:
        self._queue: _stdqueue.Queue = _stdqueue.Queue()
        self._poll = poll_seconds
        self._closed = threading.Event()
        self.published: List[bytes] = []

    def publish(self, payload: bytes) -> None:
        if self._closed.is_set():
            raise PublishError("queue is closed")
        self.published.append(payload)
        self._queue.put(payload)

    def consume(self, token: CancellationToken) -> Iterator[bytes]:
        while not token.cancelled:
            try:
                item = self._queue.get(timeout=self._poll)
            except _stdqueue.Empty:
                if self._closed.is_set():
                    return
                continue
            if item is _CLOSED:
                return
            yield item

    def close(self) -> None:
        if not self._closed.is_set():
            self._closed.set()
            self._queue.put(_CLOSED)


class _RedisLikeClient(Protocol):
    def rpush(self, name: str, *values: bytes) -> int: ...
    def blpop(self, keys: Sequence[str], timeout: int = 0) -> Optional[Tuple[bytes, bytes]]: ...
    def close(self) -> None: ...


class RedisQueue:
    """Redis list-backed queue.

    - publish: ``RPUSH name payload``
    - consume: ``BLPOP name <poll>``; the pop itself is the acknowledgement

    redis-py clients are expected, but any object with the same methods works,
    so tests inject a small fake client.
    """

    def __init__(self, client: _RedisLikeClient, *, name: str = "news", poll_seconds: int = 1) -> None:
        self._client = client
        self._name = name
        self._poll = poll_seconds
        self._closed = False

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisQueue":
        return cls(redis.Redis.from_url(url), **kwargs)

    @property
    def name(self) -> str:
        return self._name

    def publish(self, payload: bytes) -> None:
        try:
            self._client.rpush(self._name, payload)
        except RedisError as exc:
            raise PublishError(f"failed to publish to {self._name}: {exc}") from exc

    def consume(self, token: CancellationToken) -> Iterator[bytes]:
        while not token.cancelled and not self._closed:
            try:
                item = self._client.blpop([self._name], timeout=self._poll)
            except RedisError as exc:
                if self._closed:
                    return
                # transient (reset, restart): retry after one poll interval
                logger.error("queue.consume_failed", extra={"queue": self._name, "error": str(exc)})
                if token.wait(self._poll):
                    return
                continue
            if item is None:
                continue
            _, payload = item
            yield payload

    def close(self) -> None:
        self._closed = True
        try:
            self._client.close()
        except RedisError as exc:
            logger.warning("queue.close_failed", extra={"queue": self._name, "error": str(exc)})
