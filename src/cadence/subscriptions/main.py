"""
FastAPI application entry point for the subscription billing service.

Serves the job callback endpoint for push-queue backends and the webhook
intake. The job runner is built once at startup and kept on
``app.state.job_runner``.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cadence.subscriptions import __version__
from cadence.subscriptions.exceptions import SubscriptionsError
from cadence.subscriptions.jobs.factory import build_job_runner
from cadence.subscriptions.jobs.router import router as jobs_router
from cadence.subscriptions.jobs.runner import JobRunner
from cadence.subscriptions.logging import configure_logging
from cadence.subscriptions.settings import settings
from cadence.subscriptions.webhooks.router import router as webhooks_router

logger = structlog.get_logger(__name__)


def subscriptions_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render domain errors with their own status code."""
    if not isinstance(exc, SubscriptionsError):
        raise exc
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(job_runner: JobRunner | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        job_runner: Runner to serve; built from settings at startup when omitted
    """
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        if getattr(app.state, "job_runner", None) is None:
            app.state.job_runner = build_job_runner(settings)
        logger.info(
            "service.startup.complete",
            environment=settings.environment.value,
            scheduler=settings.scheduler_backend.value,
        )
        yield
        logger.info("service.shutdown.complete")

    app = FastAPI(
        title="Cadence Subscriptions",
        description="Recurring billing orchestration and dunning",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
    )
    app.state.job_runner = job_runner

    app.add_exception_handler(SubscriptionsError, subscriptions_error_handler)

    app.include_router(jobs_router)
    app.include_router(webhooks_router)

    @app.get("/health")
    async def health_check() -> dict[str, Any]:
        """Liveness check."""
        return {
            "status": "healthy",
            "version": __version__,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    return app


__all__ = ["create_app"]


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "cadence.subscriptions.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.observability.log_level.value.lower(),
    )
