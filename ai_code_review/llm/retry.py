"""
Exponential backoff for provider calls.

Only failures tagged `retryable` are re-attempted; everything else is
raised immediately and unmodified.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from ai_code_review.config import Settings
from ai_code_review.llm.errors import is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Upper bound for random jitter added to each delay (seconds)
MAX_JITTER = 0.1


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff policy; delays are in seconds."""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    jitter: float = MAX_JITTER

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if not 0 <= self.jitter <= MAX_JITTER:
            raise ValueError(f"jitter must be between 0 and {MAX_JITTER}s")

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_retries=settings.OPENROUTER_MAX_RETRIES,
            base_delay=settings.RETRY_BASE_DELAY_MS / 1000,
            max_delay=settings.RETRY_MAX_DELAY_MS / 1000,
        )

    def wait_strategy(self) -> wait_exponential_jitter:
        """
        Delay before retry n (0-indexed) is
        min(base_delay * 2**n + uniform(0, jitter), max_delay).
        """
        return wait_exponential_jitter(
            initial=self.base_delay,
            max=self.max_delay,
            exp_base=2,
            jitter=self.jitter,
        )


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        f"Retrying after error (attempt {retry_state.attempt_number}, "
        f"delay {delay:.3f}s): {error}"
    )


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run an async operation with exponential backoff.

    Args:
        operation: Zero-argument coroutine function to attempt
        policy: Backoff policy (defaults to RetryPolicy())
        sleep: Coroutine used to wait between attempts

    Returns:
        Result of the first successful attempt

    Raises:
        The first non-retryable error, or the last error once
        `policy.max_retries + 1` attempts have failed.
    """
    policy = policy or RetryPolicy()

    # tenacity only awaits coroutine functions, not callables returning awaitables
    async def attempt() -> T:
        return await operation()

    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_retries + 1),
        wait=policy.wait_strategy(),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_retry,
        sleep=sleep,
        reraise=True,
    )
    return await retrying(attempt)
