"""Connector errors and the shared HTTP fetcher."""

from __future__ import annotations

import time
from typing import Callable, List, Optional

import httpx

from ingestion.settings import DEFAULT_USER_AGENT

DEFAULT_TIMEOUT_SECONDS = 60.0


class ConnectorError(Exception):
    """Base connector error."""


class FetchError(ConnectorError):
    """Network, timeout, or non-2xx status while fetching a document."""


class DecodeError(ConnectorError):
    """Body is not a recognizable feed."""


class HttpFetcher:
    """Fetches raw document bytes over HTTP(S).

    One GET per call. ``timeout`` bounds each network step and also the whole
    request: the body is streamed and the fetch fails once the deadline
    passes, so a server trickling bytes cannot hold it open. Servers that
    reject default client identifiers get a browser-like ``User-Agent``. No
    retries happen here; callers decide whether to try again.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._timeout = timeout
        self._clock = clock
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": user_agent},
            follow_redirects=True,
            transport=transport,
        )

    def fetch(self, url: str) -> bytes:
        deadline = self._clock() + self._timeout
        try:
            with self._client.stream("GET", url) as resp:
                if not 200 <= resp.status_code < 300:
                    raise FetchError(f"unexpected status code {resp.status_code} for {url}")
                chunks: List[bytes] = []
                for chunk in resp.iter_bytes():
                    chunks.append(chunk)
                    if self._clock() > deadline:
                        raise FetchError(f"timed out fetching {url} after {self._timeout}s")
        except httpx.TimeoutException as exc:
            raise FetchError(f"timed out fetching {url}") from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"failed to fetch {url}: {exc}") from exc
        except httpx.InvalidURL as exc:
            raise FetchError(f"invalid url {url!r}") from exc
        return b"".join(chunks)

    def close(self) -> None:
        self._client.close()
