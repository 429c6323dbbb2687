from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request

from ingestion.models.domain import MAX_BIGINT, Filters
from ingestion.repositories.news import NewsStore, NotFound

from .models import MetadataOut, NewsItemOut, NewsListResponse
from .repositories import get_single_news, list_news

router = APIRouter(prefix="/api")


def store_dependency(request: Request) -> NewsStore:
    return request.app.state.service.store


StoreDep = Annotated[NewsStore, Depends(store_dependency)]


@router.get("/news", response_model=NewsListResponse)
def list_news_route(
    store: StoreDep,
    page: str | None = Query(default=None),
    pagesize: str | None = Query(default=None),
) -> NewsListResponse:
    # bad paging input falls back to defaults instead of a 4xx
    items, meta = list_news(store, Filters.from_query(page, pagesize))
    return NewsListResponse(
        news=[NewsItemOut.model_validate(item.model_dump()) for item in items],
        metadata=MetadataOut.model_validate(meta.model_dump()),
    )


@router.get("/news/{news_id}", response_model=NewsItemOut)
def get_news_route(store: StoreDep, news_id: int = Path(..., le=MAX_BIGINT)) -> NewsItemOut:
    try:
        item = get_single_news(store, news_id)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail="News item not found.") from exc
    return NewsItemOut.model_validate(item.model_dump())
