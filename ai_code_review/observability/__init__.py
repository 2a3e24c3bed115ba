"""
Observability module for logging, metrics, and secret redaction.

This module provides:
- Structured logging setup
- Metrics collection (the review core's telemetry sink)
- Redaction of secrets from logs and error messages
"""

from ai_code_review.observability.logging import LogContext, setup_logging
from ai_code_review.observability.metrics import MetricsCollector, TelemetrySink
from ai_code_review.observability.redaction import redact_secrets

__all__ = [
    "setup_logging",
    "LogContext",
    "MetricsCollector",
    "TelemetrySink",
    "redact_secrets",
]
