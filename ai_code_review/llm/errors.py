"""
Error taxonomy for the review pipeline.

Every failure carries two tags: `retryable`, which the backoff driver
consults, and `status_code`, the HTTP-equivalent status the API layer
answers with.
"""

from typing import Any, Dict, List, Optional


class ReviewError(Exception):
    """Base exception for review pipeline failures."""

    retryable: bool = False
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a response payload."""
        return {"error": self.message}


class InputValidationError(ReviewError):
    """Caller input violated one or more request constraints."""

    status_code = 400

    def __init__(self, violations: List[Dict[str, str]]):
        super().__init__("Invalid input")
        self.violations = violations

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "details": self.violations}


class TransportError(ReviewError):
    """The provider call failed before a usable response arrived."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.status = status
        self.body = body


class RetryableTransportError(TransportError):
    """Transient provider failure (HTTP 429 or 5xx)."""

    retryable = True
    status_code = 502


class FatalTransportError(TransportError):
    """Provider failure that a retry will not fix."""

    status_code = 500


class EmptyResponseError(ReviewError):
    """Provider answered 200 without any message content."""

    status_code = 500

    def __init__(self, message: str = "Empty response from OpenRouter"):
        super().__init__(message)


class MalformedOutputError(ReviewError):
    """Model output could not be parsed as JSON."""

    status_code = 502

    def __init__(self, message: str = "LLM returned invalid JSON"):
        super().__init__(message)


class SchemaViolationError(ReviewError):
    """Model output is JSON but does not satisfy the review schema."""

    status_code = 502

    def __init__(self, violations: List[Dict[str, str]]):
        super().__init__("LLM response does not match expected schema")
        self.violations = violations

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "details": self.violations}


def is_retryable(exc: BaseException) -> bool:
    """Return True when the failure is tagged as worth another attempt."""
    return getattr(exc, "retryable", False) is True
