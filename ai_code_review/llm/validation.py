"""
Validation of untrusted review requests and untrusted model output.

Both validators report every violated constraint at once as a list of
`{"field": ..., "message": ...}` items.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Union

from pydantic import ValidationError

from ai_code_review.llm.errors import (
    InputValidationError,
    MalformedOutputError,
    SchemaViolationError,
)
from ai_code_review.llm.schemas import (
    MAX_CONTENT_SIZE,
    ReviewInput,
    ReviewMeta,
    ReviewOutput,
)

logger = logging.getLogger(__name__)


def format_violations(exc: ValidationError) -> List[Dict[str, str]]:
    """
    Flatten a Pydantic ValidationError into itemized violations.

    Args:
        exc: Validation error raised by a model

    Returns:
        List of violations in error order, duplicates removed
    """
    violations: List[Dict[str, str]] = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"])
        violation = {"field": field, "message": error["msg"]}
        if violation not in violations:
            violations.append(violation)
    return violations


def validate_review_input(
    payload: Union[ReviewInput, Mapping[str, Any]],
    max_content_size: int = MAX_CONTENT_SIZE,
) -> ReviewInput:
    """
    Validate a caller-supplied review request.

    Args:
        payload: Untrusted request mapping (or an already built ReviewInput)
        max_content_size: Byte ceiling for each of diff, code and pr.diff

    Returns:
        Validated ReviewInput

    Raises:
        InputValidationError: With every violated constraint
    """
    if isinstance(payload, ReviewInput):
        payload = payload.model_dump(by_alias=True, exclude_none=True, mode="json")

    if not isinstance(payload, Mapping):
        raise InputValidationError([
            {"field": "", "message": "Request body must be a JSON object"}
        ])

    violations: List[Dict[str, str]] = []
    review_input = None
    try:
        review_input = ReviewInput.model_validate(
            payload, context={"max_content_size": max_content_size}
        )
    except ValidationError as e:
        violations.extend(format_violations(e))

    # Field errors stop the model-level check, so repeat it here
    if not any(payload.get(key) for key in ("diff", "code", "pr")):
        missing = {"field": "", "message": "Provide at least one of: diff, code, or pr"}
        if missing not in violations:
            violations.append(missing)

    if violations:
        raise InputValidationError(violations)

    return review_input


def parse_review_output(content: str, meta: ReviewMeta) -> ReviewOutput:
    """
    Parse raw model text and validate it as a ReviewOutput.

    The model never controls `meta`: whatever it sent is replaced by the
    metadata measured for this call.

    Args:
        content: Raw message content returned by the model
        meta: Metadata for the call that produced the content

    Returns:
        Fully validated ReviewOutput

    Raises:
        MalformedOutputError: If content is not valid JSON
        SchemaViolationError: If the JSON does not match the review schema
    """
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, TypeError) as e:
        logger.error(f"LLM returned invalid JSON: {content[:200]!r}")
        raise MalformedOutputError() from e

    if not isinstance(data, dict):
        raise SchemaViolationError([
            {"field": "", "message": f"Expected a JSON object, got {type(data).__name__}"}
        ])

    try:
        return ReviewOutput.model_validate({**data, "meta": meta.model_dump()})
    except ValidationError as e:
        violations = format_violations(e)
        logger.warning(f"LLM response validation failed: {violations}")
        raise SchemaViolationError(violations) from e
