"""
OpenRouter chat-completions client.

Issues exactly one provider call per `complete()` and classifies the
outcome. Retrying is left to `retry_with_backoff`; this module only
decides which failures are worth retrying.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import httpx
import openai
from openai import AsyncOpenAI

from ai_code_review.config import Settings
from ai_code_review.llm.errors import (
    EmptyResponseError,
    FatalTransportError,
    MalformedOutputError,
    RetryableTransportError,
    TransportError,
)
from ai_code_review.llm.schemas import ChatMessage, Credentials
from ai_code_review.observability.metrics import TelemetrySink

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

IDENTIFICATION_HEADERS = {
    "X-Title": "AI Code Review",
    "HTTP-Referer": "http://localhost",
}


@dataclass(frozen=True)
class LLMCompletion:
    """Raw model text plus the token usage the provider reported."""

    content: str
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None


class _NullTelemetry:
    def record_call(self, outcome: str) -> None:
        pass

    def observe_latency(self, latency_ms: float) -> None:
        pass


def classify_status(status: int, body: str) -> TransportError:
    """
    Map a non-200 provider status to a tagged transport error.

    429 and 5xx are transient; anything else will fail the same way
    on every attempt.
    """
    if status == 429 or status >= 500:
        return RetryableTransportError(f"OpenRouter {status}", status=status, body=body)
    return FatalTransportError(f"OpenRouter error {status}: {body}", status=status, body=body)


def _token_count(usage: Any, key: str) -> Optional[int]:
    value = usage.get(key) if isinstance(usage, dict) else None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def extract_completion(payload: Any) -> LLMCompletion:
    """
    Pull message content and usage out of a chat-completions body.

    Raises:
        EmptyResponseError: If the body carries no message content
    """
    choices = payload.get("choices") if isinstance(payload, dict) else None
    first = choices[0] if isinstance(choices, list) and choices else None
    message = first.get("message") if isinstance(first, dict) else None
    content = message.get("content") if isinstance(message, dict) else None

    if not isinstance(content, str) or not content:
        raise EmptyResponseError()

    usage = payload.get("usage")
    return LLMCompletion(
        content=content,
        prompt_tokens=_token_count(usage, "prompt_tokens"),
        completion_tokens=_token_count(usage, "completion_tokens"),
    )


class LLMClient:
    """
    Client for OpenRouter's OpenAI-compatible chat-completions API.

    Credentials are supplied per call, so a single client serves every
    caller. The underlying HTTP connection pool is shared across calls
    and released by `close()`.
    """

    def __init__(
        self,
        base_url: str = OPENROUTER_BASE_URL,
        timeout_seconds: float = 30.0,
        max_tokens: int = 4096,
        temperature: float = 0.1,
        telemetry: Optional[TelemetrySink] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Provider API root; requests go to {base_url}/chat/completions
            timeout_seconds: Timeout applied to each individual attempt
            max_tokens: Completion token budget
            temperature: Sampling temperature (low for stable JSON)
            telemetry: Sink notified once per call, success or failure
            http_client: Optional HTTP client (tests, connection reuse)
        """
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.telemetry = telemetry or _NullTelemetry()
        self._http_client = http_client or httpx.AsyncClient(follow_redirects=True)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        telemetry: Optional[TelemetrySink] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "LLMClient":
        return cls(
            base_url=settings.OPENROUTER_BASE_URL,
            timeout_seconds=settings.request_timeout_seconds,
            max_tokens=settings.LLM_MAX_TOKENS,
            temperature=settings.LLM_TEMPERATURE,
            telemetry=telemetry,
            http_client=http_client,
        )

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        credentials: Credentials,
    ) -> LLMCompletion:
        """
        Send one chat-completions request.

        Args:
            messages: Messages to send, in order
            credentials: API key and model for this call

        Returns:
            Raw model text with token usage

        Raises:
            RetryableTransportError: On HTTP 429 or 5xx
            FatalTransportError: On other non-200 statuses, timeouts or
                connection failures
            MalformedOutputError: If the response body is not JSON
            EmptyResponseError: If the response carries no content
        """
        start_time = time.perf_counter()
        outcome = "error"
        try:
            completion = await self._request(messages, credentials)
            outcome = "success"
            return completion
        finally:
            latency_ms = (time.perf_counter() - start_time) * 1000
            self.telemetry.record_call(outcome)
            self.telemetry.observe_latency(latency_ms)
            logger.debug(f"OpenRouter call finished: outcome={outcome}, latency_ms={latency_ms:.1f}")

    async def _request(
        self,
        messages: Sequence[ChatMessage],
        credentials: Credentials,
    ) -> LLMCompletion:
        client = AsyncOpenAI(
            api_key=credentials.api_key,
            base_url=self.base_url,
            max_retries=0,
            timeout=httpx.Timeout(self.timeout_seconds),
            default_headers=IDENTIFICATION_HEADERS,
            http_client=self._http_client,
        )

        try:
            raw = await client.chat.completions.with_raw_response.create(
                model=credentials.model,
                messages=[message.model_dump() for message in messages],
                response_format={"type": "json_object"},
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except openai.APIStatusError as e:
            raise classify_status(e.status_code, e.response.text) from e
        except openai.APITimeoutError as e:
            raise FatalTransportError(
                f"OpenRouter request timed out after {self.timeout_seconds}s"
            ) from e
        except openai.APIConnectionError as e:
            raise FatalTransportError(f"OpenRouter connection failed: {e}") from e

        response = raw.http_response
        if response.status_code != 200:
            raise FatalTransportError(
                f"OpenRouter error {response.status_code}: {response.text}",
                status=response.status_code,
                body=response.text,
            )

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"OpenRouter returned a non-JSON body: {response.text[:200]!r}")
            raise MalformedOutputError("OpenRouter returned invalid JSON") from e

        return extract_completion(payload)

    async def close(self) -> None:
        """Release pooled HTTP connections."""
        await self._http_client.aclose()
