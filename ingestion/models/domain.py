"""Domain DTOs for the ingestion pipeline."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 5
# Largest value a BIGINT column or OFFSET accepts.
MAX_BIGINT = 2**63 - 1

EnrichmentResult = Dict[str, str]

# enrichment fields with a column on the news item; other extracted fields are not stored
ENRICHABLE_FIELDS = ("description", "image")


class FeedEntry(BaseModel):
    """Candidate item decoded from a feed (title and link only)."""

    title: str = ""
    link: str = ""


class NewsItemDTO(BaseModel):
    """News item as stored and served."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = Field(None, description="Store-assigned identifier")
    title: str
    link: str = Field(..., description="Natural key used for dedup")
    published: Optional[datetime] = None
    description: str = ""
    image: str = ""

    def merge_enrichments(self, enrichments: EnrichmentResult) -> int:
        """Apply non-empty enrichment values; existing values are never cleared.

        Only ``ENRICHABLE_FIELDS`` are applied. Fields registered with
        ``register_extractor`` under other names are ignored here.
        """
        applied = 0
        for name in ENRICHABLE_FIELDS:
            value = (enrichments.get(name) or "").strip()
            if value:
                setattr(self, name, value)
                applied += 1
        return applied


class Filters(BaseModel):
    """Paging filters, e.g. ``?page=1&pagesize=5``."""

    page: int = DEFAULT_PAGE
    page_size: int = DEFAULT_PAGE_SIZE

    @classmethod
    def from_query(cls, page: Optional[str], page_size: Optional[str]) -> "Filters":
        return cls(page=_lenient_int(page), page_size=_lenient_int(page_size)).normalized()

    def normalized(self) -> "Filters":
        return Filters(
            page=self.page if self.page >= 1 else DEFAULT_PAGE,
            page_size=self.page_size if self.page_size >= 1 else DEFAULT_PAGE_SIZE,
        )

    @property
    def limit(self) -> int:
        return min(self.page_size, MAX_BIGINT)

    @property
    def offset(self) -> int:
        return min((self.page - 1) * self.page_size, MAX_BIGINT)


class Metadata(BaseModel):
    """Pagination envelope; the all-zero value means "no results"."""

    current_page: int = 0
    page_size: int = 0
    first_page: int = 0
    last_page: int = 0
    total_records: int = 0

    @property
    def is_empty(self) -> bool:
        return self.total_records == 0


def _lenient_int(value: Optional[str]) -> int:
    try:
        return int(value) if value is not None else 0
    except (TypeError, ValueError):
        return 0
