from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request

from ingestion.service import NewsService
from ingestion.settings import get_settings
from ingestion.utils.logging import configure_logging

from .models import HealthResponse
from .routes import router


def create_app(service: NewsService | None = None, *, run_pipeline: bool = True) -> FastAPI:
    """Build the read API; its lifespan runs and shuts down the pipeline.

    ``run_pipeline=False`` serves the store without starting the scheduler
    and the enrichment worker.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        svc = service
        if svc is None:
            settings = get_settings()
            configure_logging(settings.structlog_level, json_enabled=settings.log_json)
            svc = NewsService.from_settings(settings)
        app.state.service = svc
        app.state.run_pipeline = run_pipeline
        if run_pipeline:
            svc.start()
        try:
            yield
        finally:
            svc.stop()

    app = FastAPI(title="News Feed API", version="0.1.0", lifespan=lifespan)
    app.include_router(router)

    @app.get("/healthz", tags=["system"], response_model=HealthResponse)
    def healthcheck(request: Request) -> HealthResponse:
        svc: NewsService = request.app.state.service
        if not request.app.state.run_pipeline:
            return HealthResponse(status="ok", ingestion="disabled", enrichment="disabled")
        ingestion = "running" if svc.ingestion_running else "stopped"
        enrichment = "running" if svc.enrichment_running else "stopped"
        status = "ok" if ingestion == enrichment == "running" else "degraded"
        return HealthResponse(status=status, ingestion=ingestion, enrichment=enrichment)

    return app


# settings are read when the lifespan starts, so importing stays side-effect free
app = create_app()
