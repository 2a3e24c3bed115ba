"""
Unit tests for the backoff driver.
"""

import asyncio
from types import SimpleNamespace

import pytest

from ai_code_review.llm.errors import (
    EmptyResponseError,
    FatalTransportError,
    MalformedOutputError,
    RetryableTransportError,
)
from ai_code_review.llm.retry import MAX_JITTER, RetryPolicy, retry_with_backoff
from ai_code_review.config import Settings


class FlakyOperation:
    """Raises the scripted errors in order, then returns 'ok'."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


class RecordingSleep:

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class TestRetryWithBackoff:

    @pytest.mark.asyncio
    async def test_success_returns_immediately(self):
        operation = FlakyOperation()
        sleep = RecordingSleep()

        assert await retry_with_backoff(operation, RetryPolicy(), sleep=sleep) == "ok"
        assert operation.calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_always_retryable_is_attempted_max_retries_plus_one(self):
        error = RetryableTransportError("OpenRouter 503", status=503)
        operation = FlakyOperation(*[error] * 10)
        sleep = RecordingSleep()

        with pytest.raises(RetryableTransportError) as exc_info:
            await retry_with_backoff(operation, RetryPolicy(max_retries=3), sleep=sleep)

        assert operation.calls == 4
        assert len(sleep.delays) == 3
        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_fatal_error_is_attempted_once(self):
        error = FatalTransportError("OpenRouter error 401: unauthorized", status=401)
        operation = FlakyOperation(error)
        sleep = RecordingSleep()

        with pytest.raises(FatalTransportError) as exc_info:
            await retry_with_backoff(operation, RetryPolicy(max_retries=3), sleep=sleep)

        assert operation.calls == 1
        assert sleep.delays == []
        assert exc_info.value is error

    @pytest.mark.parametrize("error", [
        EmptyResponseError(),
        MalformedOutputError(),
        ValueError("boom"),
    ])
    @pytest.mark.asyncio
    async def test_untagged_errors_are_not_retried(self, error):
        operation = FlakyOperation(error)

        with pytest.raises(type(error)):
            await retry_with_backoff(operation, RetryPolicy(), sleep=RecordingSleep())

        assert operation.calls == 1

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failures(self):
        operation = FlakyOperation(
            RetryableTransportError("OpenRouter 429", status=429),
            RetryableTransportError("OpenRouter 502", status=502),
        )

        assert await retry_with_backoff(operation, RetryPolicy(), sleep=RecordingSleep()) == "ok"
        assert operation.calls == 3

    @pytest.mark.asyncio
    async def test_fatal_after_retryable_stops_immediately(self):
        fatal = FatalTransportError("OpenRouter error 400: bad", status=400)
        operation = FlakyOperation(RetryableTransportError("OpenRouter 429", status=429), fatal)

        with pytest.raises(FatalTransportError) as exc_info:
            await retry_with_backoff(operation, RetryPolicy(max_retries=5), sleep=RecordingSleep())

        assert operation.calls == 2
        assert exc_info.value is fatal

    @pytest.mark.asyncio
    async def test_zero_retries_means_single_attempt(self):
        operation = FlakyOperation(RetryableTransportError("OpenRouter 500", status=500))

        with pytest.raises(RetryableTransportError):
            await retry_with_backoff(operation, RetryPolicy(max_retries=0), sleep=RecordingSleep())

        assert operation.calls == 1

    @pytest.mark.asyncio
    async def test_lambda_returning_coroutine_is_awaited_and_retried(self):
        operation = FlakyOperation(*[RetryableTransportError("OpenRouter 503", status=503)] * 10)

        with pytest.raises(RetryableTransportError):
            await retry_with_backoff(
                lambda: operation(), RetryPolicy(max_retries=3), sleep=RecordingSleep()
            )

        assert operation.calls == 4

    @pytest.mark.asyncio
    async def test_lambda_result_is_the_awaited_value(self):
        operation = FlakyOperation(RetryableTransportError("OpenRouter 429", status=429))

        result = await retry_with_backoff(lambda: operation(), RetryPolicy(), sleep=RecordingSleep())

        assert result == "ok"
        assert operation.calls == 2

    @pytest.mark.asyncio
    async def test_sleeps_follow_exponential_schedule(self):
        operation = FlakyOperation(*[RetryableTransportError("OpenRouter 429", status=429)] * 3)
        sleep = RecordingSleep()
        policy = RetryPolicy(max_retries=3, base_delay=1.0, max_delay=10.0)

        await retry_with_backoff(operation, policy, sleep=sleep)

        for attempt, delay in enumerate(sleep.delays):
            assert 2 ** attempt <= delay <= 2 ** attempt + MAX_JITTER

    @pytest.mark.asyncio
    async def test_cancellation_during_backoff_propagates(self):
        operation = FlakyOperation(*[RetryableTransportError("OpenRouter 503", status=503)] * 5)
        policy = RetryPolicy(max_retries=5, base_delay=60.0, max_delay=60.0)

        task = asyncio.create_task(retry_with_backoff(operation, policy))
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert operation.calls == 1


class TestRetryPolicy:

    @pytest.mark.parametrize("attempt", range(6))
    def test_delay_bounds(self, attempt):
        policy = RetryPolicy(base_delay=0.5, max_delay=100.0)
        wait = policy.wait_strategy()

        for _ in range(50):
            delay = wait(SimpleNamespace(attempt_number=attempt + 1))
            assert 0.5 * 2 ** attempt <= delay <= 0.5 * 2 ** attempt + MAX_JITTER

    def test_delay_is_capped(self):
        wait = RetryPolicy(base_delay=1.0, max_delay=3.0).wait_strategy()

        assert wait(SimpleNamespace(attempt_number=5)) == 3.0

    def test_jitter_is_bounded(self):
        with pytest.raises(ValueError):
            RetryPolicy(jitter=0.5)

    def test_negative_retries_rejected(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_retries=-1)

    def test_from_settings(self):
        settings = Settings(OPENROUTER_MAX_RETRIES=5, RETRY_BASE_DELAY_MS=250, RETRY_MAX_DELAY_MS=4000)

        policy = RetryPolicy.from_settings(settings)

        assert policy == RetryPolicy(max_retries=5, base_delay=0.25, max_delay=4.0)
