"""
Review endpoint.

Validates the request, resolves credentials, runs the review pipeline
and maps pipeline errors to HTTP responses.
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ai_code_review.config import Settings
from ai_code_review.dependencies import (
    get_app_settings,
    get_correlation_id,
    get_credential_store,
    get_orchestrator,
    prepare_review,
)
from ai_code_review.llm.errors import InputValidationError, ReviewError
from ai_code_review.observability.redaction import redact_secrets, redact_value
from ai_code_review.review.orchestrator import ReviewOrchestrator
from ai_code_review.storage.credentials import CredentialStore

logger = logging.getLogger(__name__)

router = APIRouter()


def _error_response(error: ReviewError, correlation_id: Optional[str]) -> JSONResponse:
    content = redact_value(error.to_dict())
    content["correlationId"] = correlation_id
    return JSONResponse(status_code=error.status_code, content=content)


@router.post(
    "",
    summary="Review code",
    description="Accepts a diff, code snippet or PR and returns an LLM risk analysis",
)
async def create_review(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    orchestrator: ReviewOrchestrator = Depends(get_orchestrator),
    credential_store: CredentialStore = Depends(get_credential_store),
    correlation_id: Optional[str] = Depends(get_correlation_id),
):
    """
    Review endpoint.

    Body: ReviewInput fields plus optional `apiKey` and `model`; when
    omitted, stored credentials are used.

    Returns:
        JSONResponse: ReviewOutput on success, error object otherwise
    """
    body = await request.body()
    if len(body) > settings.MAX_BODY_SIZE:
        return JSONResponse(
            status_code=413,
            content={"error": "Request body too large", "correlationId": correlation_id},
        )

    try:
        payload = json.loads(body)
    except ValueError:
        error = InputValidationError([{"field": "", "message": "Request body must be valid JSON"}])
        return _error_response(error, correlation_id)

    try:
        review_input, credentials = prepare_review(
            payload, credential_store, settings.MAX_CONTENT_SIZE
        )
        result = await orchestrator.review(review_input, credentials)
    except InputValidationError as e:
        logger.info(f"Rejected review request: {e.violations}")
        return _error_response(e, correlation_id)
    except ReviewError as e:
        logger.error(f"Review failed: {redact_secrets(e.message)}")
        return _error_response(e, correlation_id)

    return JSONResponse(content=result.model_dump(mode="json", exclude_none=True))
