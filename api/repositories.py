from __future__ import annotations

import logging

from ingestion.models.domain import Filters, Metadata, NewsItemDTO
from ingestion.repositories.news import NewsStore, NotFound
from ingestion.services.pagination import paginate

logger = logging.getLogger(__name__)


def list_news(store: NewsStore, filters: Filters) -> tuple[list[NewsItemDTO], Metadata]:
    """Return one page of news and its pagination metadata.

    Filters are normalized here, so callers may pass anything.
    """
    filters = filters.normalized()
    items, total = store.list_page(filters)
    return items, paginate(total, filters.page, filters.page_size)


def get_single_news(store: NewsStore, news_id: int) -> NewsItemDTO:
    try:
        return store.get_by_id(news_id)
    except NotFound:
        logger.info("news.not_found", extra={"item_id": news_id})
        raise
