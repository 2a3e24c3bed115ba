"""
Review request pipeline.

validate input -> build prompt -> call the model (with backoff) ->
validate output. Any stage failing stops the pipeline.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from ai_code_review.config import Settings
from ai_code_review.llm.errors import ReviewError
from ai_code_review.llm.model import LLMClient
from ai_code_review.llm.prompts import build_messages
from ai_code_review.llm.retry import RetryPolicy, retry_with_backoff
from ai_code_review.llm.schemas import (
    MAX_CONTENT_SIZE,
    Credentials,
    ReviewInput,
    ReviewMeta,
    ReviewOutput,
)
from ai_code_review.llm.validation import parse_review_output, validate_review_input
from ai_code_review.observability.redaction import redact_secrets

logger = logging.getLogger(__name__)


class ReviewOrchestrator:
    """
    Runs one review per call.

    Holds only configuration and collaborators; nothing is retained
    between calls, so one instance serves concurrent requests.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        retry_policy: Optional[RetryPolicy] = None,
        max_content_size: int = MAX_CONTENT_SIZE,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the orchestrator.

        Args:
            llm_client: Client used for the model call
            retry_policy: Backoff policy for transient provider failures
            max_content_size: Byte ceiling for each content field
            sleep: Coroutine used for backoff waits
        """
        self.llm_client = llm_client
        self.retry_policy = retry_policy or RetryPolicy()
        self.max_content_size = max_content_size
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings, llm_client: LLMClient) -> "ReviewOrchestrator":
        return cls(
            llm_client=llm_client,
            retry_policy=RetryPolicy.from_settings(settings),
            max_content_size=settings.MAX_CONTENT_SIZE,
        )

    async def review(
        self,
        payload: Union[ReviewInput, Mapping[str, Any]],
        credentials: Credentials,
    ) -> ReviewOutput:
        """
        Execute a complete review.

        Args:
            payload: Untrusted review request
            credentials: API key and model to call the provider with

        Returns:
            Schema-valid review

        Raises:
            InputValidationError: If the request is invalid (no provider call is made)
            TransportError: If the provider call fails
            EmptyResponseError, MalformedOutputError, SchemaViolationError:
                If the model output is unusable
        """
        review_input = validate_review_input(payload, self.max_content_size)

        logger.info(
            f"Processing review request: model={credentials.model}, "
            f"ruleset={review_input.ruleset.value}, has_code={bool(review_input.code)}, "
            f"has_diff={bool(review_input.diff)}, has_pr={bool(review_input.pr)}"
        )

        messages = build_messages(review_input)

        start_time = time.perf_counter()
        try:
            completion = await retry_with_backoff(
                lambda: self.llm_client.complete(messages, credentials),
                self.retry_policy,
                sleep=self._sleep,
            )
            latency_ms = int((time.perf_counter() - start_time) * 1000)

            meta = ReviewMeta(
                model=credentials.model,
                latency_ms=latency_ms,
                prompt_tokens=completion.prompt_tokens,
                completion_tokens=completion.completion_tokens,
            )
            result = parse_review_output(completion.content, meta)
        except ReviewError as e:
            logger.error(f"Review failed: {type(e).__name__}: {redact_secrets(e.message)}")
            raise

        logger.info(
            f"Review completed: risk_score={result.risk_score}, "
            f"issues={len(result.issues)}, latency_ms={result.meta.latency_ms}"
        )
        return result
