"""
Health, configuration and metrics endpoints.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from ai_code_review.config import Settings
from ai_code_review.dependencies import get_app_settings, get_metrics
from ai_code_review.observability.metrics import MetricsCollector

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    timestamp: datetime


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check():
    return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc))


@router.get(
    "/config",
    summary="Public limits",
    description="Limits a client needs to know before submitting a review",
)
async def public_config(settings: Settings = Depends(get_app_settings)) -> Dict[str, Any]:
    return {
        "rateLimit": {
            "max": settings.RATE_LIMIT_MAX,
            "windowMs": settings.RATE_LIMIT_WINDOW_MS,
        },
        "maxContentSize": settings.MAX_CONTENT_SIZE,
        "openrouterTimeout": settings.OPENROUTER_TIMEOUT_MS,
    }


@router.get("/metrics", summary="Metrics export")
async def metrics_export(metrics: MetricsCollector = Depends(get_metrics)) -> Dict[str, Any]:
    return metrics.export_metrics()
