"""Best-effort metadata extraction from linked article pages."""

from __future__ import annotations

import re
from typing import Callable, Dict, List, Optional, Protocol, Tuple

from ingestion.models.domain import EnrichmentResult
from ingestion.utils.logging import get_logger

logger = get_logger(__name__)

ExtractorFn = Callable[[str], Optional[str]]

_REGISTRY: List[Tuple[str, ExtractorFn]] = []


def pattern_extractor(pattern: str) -> ExtractorFn:
    """Extractor returning the first capture group of ``pattern``, if any."""
    compiled = re.compile(pattern, re.IGNORECASE)

    def _extract(html: str) -> Optional[str]:
        match = compiled.search(html)
        return match.group(1) if match else None

    return _extract


def register_extractor(name: str, fn: ExtractorFn) -> None:
    """Add or replace the extractor for an enrichment field.

    Names outside ``ENRICHABLE_FIELDS`` still show up in
    ``extract_enrichments`` results but are not written to the store.
    """
    for index, (existing, _) in enumerate(_REGISTRY):
        if existing == name:
            _REGISTRY[index] = (name, fn)
            return
    _REGISTRY.append((name, fn))


def registered_fields() -> List[str]:
    return [name for name, _ in _REGISTRY]


register_extractor("description", pattern_extractor(r'<meta[^>]+name="description"[^>]+content="([^"]+)"'))
register_extractor("image", pattern_extractor(r'<meta[^>]+property="og:image"[^>]+content="([^"]+)"'))


def extract_enrichments(html: str) -> EnrichmentResult:
    """Run every registered extractor independently; never raises."""
    result: Dict[str, str] = {}
    if not html:
        return result
    for name, fn in _REGISTRY:
        try:
            value = fn(html)
        except Exception:  # one broken extractor must not hide the others
            logger.warning("enrich.extractor_failed", extra={"field": name}, exc_info=True)
            continue
        if value:
            result[name] = value
    return result


class Fetcher(Protocol):
    def fetch(self, url: str) -> bytes: ...


class PageEnricher:
    """Fetches the page an item links to and extracts enrichment fields."""

    def __init__(self, fetcher: Fetcher) -> None:
        self._fetcher = fetcher

    def enrich(self, link: str) -> EnrichmentResult:
        body = self._fetcher.fetch(link)
        return extract_enrichments(body.decode("utf-8", errors="replace"))
