"""
Shared dependencies for dependency injection.

Everything a route needs lives on `app.state`, set up once by
`create_app`; these functions hand it to routes through FastAPI's
`Depends`, which also lets tests override them.
"""

from typing import Any, Mapping, Optional, Tuple

from fastapi import Request
from pydantic import ValidationError

from ai_code_review.config import Settings
from ai_code_review.llm.errors import InputValidationError
from ai_code_review.llm.schemas import MAX_CONTENT_SIZE, Credentials, ReviewInput
from ai_code_review.llm.validation import format_violations, validate_review_input
from ai_code_review.observability.metrics import MetricsCollector
from ai_code_review.review.orchestrator import ReviewOrchestrator
from ai_code_review.storage.credentials import CredentialStore


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_orchestrator(request: Request) -> ReviewOrchestrator:
    return request.app.state.orchestrator


def get_credential_store(request: Request) -> CredentialStore:
    return request.app.state.credential_store


def get_metrics(request: Request) -> MetricsCollector:
    return request.app.state.metrics


def get_correlation_id(request: Request) -> Optional[str]:
    return getattr(request.state, "correlation_id", None)


def resolve_credentials(payload: Mapping[str, Any], store: CredentialStore) -> Credentials:
    """
    Resolve credentials for a review request.

    Values in the request body win; missing ones fall back to the
    credential store field by field.

    Raises:
        InputValidationError: If no usable API key or model is available
    """
    stored = store.get()
    api_key = payload.get("apiKey") or (stored.api_key if stored else None)
    model = payload.get("model") or (stored.model if stored else None)

    violations = []
    if not api_key:
        violations.append({"field": "apiKey", "message": "API key is required"})
    if not model:
        violations.append({"field": "model", "message": "Model is required"})
    if violations:
        raise InputValidationError(violations)

    try:
        return Credentials(apiKey=api_key, model=model)
    except ValidationError as e:
        raise InputValidationError(format_violations(e)) from e


def prepare_review(
    payload: Any,
    store: CredentialStore,
    max_content_size: int = MAX_CONTENT_SIZE,
) -> Tuple[ReviewInput, Credentials]:
    """
    Validate a review request and resolve its credentials in one pass.

    Credential and content problems are reported together so the caller
    sees every violation at once.

    Raises:
        InputValidationError: With every credential and input violation
    """
    violations = []
    credentials = None
    if isinstance(payload, Mapping):
        try:
            credentials = resolve_credentials(payload, store)
        except InputValidationError as e:
            violations.extend(e.violations)

    review_input = None
    try:
        review_input = validate_review_input(payload, max_content_size)
    except InputValidationError as e:
        violations.extend(e.violations)

    if violations:
        raise InputValidationError(violations)

    return review_input, credentials
