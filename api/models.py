from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

TaskStatus = Literal["running", "stopped", "disabled"]


class NewsItemOut(BaseModel):
    id: int
    title: str
    link: str
    published: datetime | None = None
    description: str = ""
    image: str = ""


class MetadataOut(BaseModel):
    current_page: int = 0
    page_size: int = 0
    first_page: int = 0
    last_page: int = 0
    total_records: int = 0


class NewsListResponse(BaseModel):
    news: list[NewsItemOut] = Field(default_factory=list)
    metadata: MetadataOut


class HealthResponse(BaseModel):
    status: Literal["ok", "degraded"]
    ingestion: TaskStatus
    enrichment: TaskStatus
