"""
Shared fixtures for unit and integration tests.
"""

import pytest

from ai_code_review.llm.model import LLMClient
from ai_code_review.llm.schemas import Credentials
from ai_code_review.observability.metrics import MetricsCollector
from tests.stubs import StubProvider


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(apiKey="k", model="m")


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture
def make_llm_client(metrics):
    """Factory building an LLMClient wired to a StubProvider."""

    def _make(provider: StubProvider, **kwargs) -> LLMClient:
        return LLMClient(telemetry=metrics, http_client=provider.http_client(), **kwargs)

    return _make
