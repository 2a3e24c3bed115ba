"""
FastAPI entrypoint for the AI Code Review service.

This module builds the FastAPI application, wires middleware and
registers all routes.
"""

import logging
import time
import uuid
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ai_code_review.api import credentials, health, review
from ai_code_review.api.rate_limit import RateLimiter
from ai_code_review.config import Settings, get_settings
from ai_code_review.llm.model import LLMClient
from ai_code_review.observability.logging import LogContext, setup_logging
from ai_code_review.observability.metrics import MetricsCollector
from ai_code_review.observability.redaction import redact_secrets
from ai_code_review.review.orchestrator import ReviewOrchestrator
from ai_code_review.storage.credentials import CredentialStore

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    llm_client: Optional[LLMClient] = None,
    metrics: Optional[MetricsCollector] = None,
    credential_store: Optional[CredentialStore] = None,
    orchestrator: Optional[ReviewOrchestrator] = None,
) -> FastAPI:
    """
    Build the application.

    Every collaborator can be injected; anything omitted is built from
    settings.
    """
    settings = settings or get_settings()
    metrics = metrics or MetricsCollector(enabled=settings.METRICS_ENABLED)
    llm_client = llm_client or LLMClient.from_settings(settings, telemetry=metrics)
    credential_store = credential_store or CredentialStore(settings.CREDENTIALS_FILE)
    orchestrator = orchestrator or ReviewOrchestrator.from_settings(settings, llm_client)
    rate_limiter = RateLimiter(settings.RATE_LIMIT_MAX, settings.rate_limit_window_seconds)

    app = FastAPI(
        title="AI Code Review",
        description="LLM-backed risk analysis for diffs, code snippets and pull requests",
        version="1.0.0",
        docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
    )

    app.state.settings = settings
    app.state.metrics = metrics
    app.state.llm_client = llm_client
    app.state.credential_store = credential_store
    app.state.orchestrator = orchestrator

    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        client_id = request.client.host if request.client else "unknown"
        if not rate_limiter.allow(client_id):
            return JSONResponse(status_code=429, content={"error": "Too many requests"})
        return await call_next(request)

    @app.middleware("http")
    async def correlation_and_metrics(request: Request, call_next):
        correlation_id = request.headers.get("x-correlation-id") or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        start_time = time.perf_counter()

        with LogContext(correlation_id=correlation_id):
            response = await call_next(request)

        response.headers["x-correlation-id"] = correlation_id
        route = request.scope.get("route")
        metrics.record_request(
            route.path if route else request.url.path,
            response.status_code,
            (time.perf_counter() - start_time) * 1000,
        )
        return response

    # CORS middleware (added last so it wraps everything, 429s included)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["x-correlation-id"],
    )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        correlation_id = getattr(request.state, "correlation_id", None)
        logger.error(
            f"Unhandled error: {redact_secrets(str(exc))}",
            extra={"correlation_id": correlation_id},
        )
        return JSONResponse(
            status_code=500,
            content={"error": "Internal Server Error", "correlationId": correlation_id},
        )

    app.include_router(health.router, tags=["health"])
    app.include_router(review.router, prefix="/review", tags=["review"])
    app.include_router(credentials.router, prefix="/credentials", tags=["credentials"])

    @app.on_event("startup")
    async def startup_event():
        logger.info(
            "AI Code Review starting",
            extra={"environment": settings.ENVIRONMENT, "port": settings.PORT},
        )

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("AI Code Review shutting down")
        await llm_client.close()

    return app


def run() -> None:
    """Run the server with uvicorn."""
    import uvicorn

    settings = get_settings()
    setup_logging(settings)
    uvicorn.run(
        create_app(settings),
        host="0.0.0.0",
        port=settings.PORT,
    )


if __name__ == "__main__":
    run()
