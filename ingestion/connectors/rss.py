"""RSS connector: fetch a feed and decode it into candidate entries."""

from __future__ import annotations

import io
import xml.sax
from typing import List, Protocol

import feedparser

from ingestion.models.domain import FeedEntry

from .base import DecodeError


class Fetcher(Protocol):
    def fetch(self, url: str) -> bytes: ...


# bozo reasons that say nothing about the feed structure itself
_TOLERATED_BOZO = (
    feedparser.CharacterEncodingOverride,
    feedparser.NonXMLContentType,
)

# strict-XML errors the loose parser recovers from (HTML entities, bare '&')
_RECOVERABLE_SAX_ERRORS = (
    "undefined entity",
    "not well-formed (invalid token)",
)


def _is_recoverable(parsed: feedparser.FeedParserDict) -> bool:
    exc = parsed.get("bozo_exception")
    if isinstance(exc, _TOLERATED_BOZO):
        return True
    if not isinstance(exc, xml.sax.SAXParseException):
        return False
    if not parsed.get("version") or not parsed.entries:
        return False
    return exc.getMessage() in _RECOVERABLE_SAX_ERRORS


def decode_feed(raw: bytes) -> List[FeedEntry]:
    """Parse feed bytes into entries, preserving feed order.

    A well-formed feed without items (``<rss></rss>``) yields ``[]``. Stray
    HTML entities or unescaped ampersands are accepted when the entries were
    still recovered. Anything else that is not a recognizable feed, such as
    mismatched tags, raises ``DecodeError``.
    """
    parsed = feedparser.parse(io.BytesIO(raw))

    if parsed.get("bozo") and not _is_recoverable(parsed):
        raise DecodeError(f"malformed feed: {parsed.get('bozo_exception')}")
    if not parsed.get("version"):
        raise DecodeError("document is not a recognizable feed")

    return [
        FeedEntry(
            title=str(entry.get("title") or "").strip(),
            link=str(entry.get("link") or "").strip(),
        )
        for entry in parsed.entries
    ]


class RSSConnector:
    """Connector bound to a single feed URL."""

    source = "rss"

    def __init__(self, url: str, fetcher: Fetcher) -> None:
        self.url = url
        self._fetcher = fetcher

    def fetch_entries(self) -> List[FeedEntry]:
        return decode_feed(self._fetcher.fetch(self.url))
