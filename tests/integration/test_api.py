"""
HTTP API tests against the FastAPI app with a stubbed provider.
"""

import json

import pytest
from fastapi.testclient import TestClient

from ai_code_review.config import Settings
from ai_code_review.llm.retry import RetryPolicy
from ai_code_review.main import create_app
from ai_code_review.observability.metrics import MetricNames
from ai_code_review.review.orchestrator import ReviewOrchestrator
from tests.stubs import StubProvider, ok, ok_review, status


async def _no_sleep(delay):
    pass


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        CREDENTIALS_FILE=tmp_path / "credentials.json",
        RATE_LIMIT_MAX=100,
        MAX_BODY_SIZE=256000,
    )


@pytest.fixture
def make_client(settings, metrics, make_llm_client):
    """Factory building a TestClient around an app wired to a StubProvider."""

    def _make(provider: StubProvider, app_settings: Settings = None) -> TestClient:
        app_settings = app_settings or settings
        llm_client = make_llm_client(provider)
        orchestrator = ReviewOrchestrator(
            llm_client,
            retry_policy=RetryPolicy(max_retries=2),
            max_content_size=app_settings.MAX_CONTENT_SIZE,
            sleep=_no_sleep,
        )
        app = create_app(
            settings=app_settings,
            llm_client=llm_client,
            metrics=metrics,
            orchestrator=orchestrator,
        )
        return TestClient(app)

    return _make


REVIEW_BODY = {
    "code": "function f(){return x}",
    "languageHint": "javascript",
    "apiKey": "sk-or-v1-abcdefghijklmnop",
    "model": "openai/gpt-4o-mini",
}


class TestReviewEndpoint:

    def test_successful_review(self, make_client):
        provider = StubProvider([ok_review()])
        client = make_client(provider)

        response = client.post("/review", json=REVIEW_BODY)

        assert response.status_code == 200
        data = response.json()
        assert data["risk_score"] == 65
        assert data["meta"]["model"] == "openai/gpt-4o-mini"
        assert data["meta"]["prompt_tokens"] == 120
        assert response.headers["x-correlation-id"]

        sent = provider.requests[0]
        assert sent.headers["authorization"] == "Bearer sk-or-v1-abcdefghijklmnop"

    def test_correlation_id_is_echoed(self, make_client):
        client = make_client(StubProvider([ok_review()]))

        response = client.post("/review", json=REVIEW_BODY, headers={"x-correlation-id": "req-42"})

        assert response.headers["x-correlation-id"] == "req-42"

    def test_missing_content_is_bad_request(self, make_client):
        provider = StubProvider([ok_review()])
        client = make_client(provider)

        response = client.post(
            "/review",
            json={"apiKey": "k", "model": "m"},
            headers={"x-correlation-id": "req-1"},
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Invalid input"
        assert any("at least one of" in d["message"] for d in data["details"])
        assert data["correlationId"] == "req-1"
        assert provider.requests == []

    def test_missing_credentials_reported_with_input_errors(self, make_client):
        client = make_client(StubProvider([ok_review()]))

        response = client.post("/review", json={"ruleset": "style"})

        assert response.status_code == 400
        fields = {d["field"] for d in response.json()["details"]}
        assert {"apiKey", "model", "ruleset"} <= fields

    def test_invalid_json_body(self, make_client):
        client = make_client(StubProvider([ok_review()]))

        response = client.post(
            "/review",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["details"][0]["message"] == "Request body must be valid JSON"

    def test_non_object_body(self, make_client):
        client = make_client(StubProvider([ok_review()]))

        response = client.post("/review", json=["code"])

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid input"

    def test_oversized_body_is_rejected(self, make_client, settings):
        client = make_client(StubProvider([ok_review()]))
        body = dict(REVIEW_BODY, code="x" * (settings.MAX_BODY_SIZE + 1))

        response = client.post("/review", json=body)

        assert response.status_code == 413

    def test_oversized_content_is_bad_request(self, make_client, tmp_path):
        small = Settings(CREDENTIALS_FILE=tmp_path / "c.json", MAX_CONTENT_SIZE=1024)
        client = make_client(StubProvider([ok_review()]), small)

        response = client.post("/review", json=dict(REVIEW_BODY, code="y" * 2048))

        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "code"

    def test_invalid_model_output_is_bad_gateway(self, make_client):
        client = make_client(StubProvider([ok("not json")]))

        response = client.post("/review", json=REVIEW_BODY)

        assert response.status_code == 502
        assert response.json()["error"] == "LLM returned invalid JSON"

    def test_schema_violation_is_bad_gateway(self, make_client):
        client = make_client(StubProvider([ok_review(risk_score="high")]))

        response = client.post("/review", json=REVIEW_BODY)

        assert response.status_code == 502
        data = response.json()
        assert data["error"] == "LLM response does not match expected schema"
        assert data["details"][0]["field"] == "risk_score"

    def test_exhausted_retries_are_bad_gateway(self, make_client):
        provider = StubProvider([status(503)])
        client = make_client(provider)

        response = client.post("/review", json=REVIEW_BODY)

        assert response.status_code == 502
        assert len(provider.requests) == 3

    def test_fatal_provider_error_does_not_leak_key(self, make_client):
        provider = StubProvider([status(401, "bad key sk-or-v1-abcdefghijklmnop")])
        client = make_client(provider)

        response = client.post("/review", json=REVIEW_BODY)

        assert response.status_code == 500
        assert "sk-or-v1-abcdefghijklmnop" not in response.text
        assert "[REDACTED]" in response.json()["error"]
        assert len(provider.requests) == 1

    def test_empty_completion_is_server_error(self, make_client):
        client = make_client(StubProvider([ok("")]))

        response = client.post("/review", json=REVIEW_BODY)

        assert response.status_code == 500
        assert response.json()["error"] == "Empty response from OpenRouter"

    def test_stored_credentials_fill_missing_fields(self, make_client):
        provider = StubProvider([ok_review()])
        client = make_client(provider)
        client.put("/credentials", json={"apiKey": "stored-key", "model": "stored/model"})

        response = client.post("/review", json={"diff": "+a = 1", "model": "override/model"})

        assert response.status_code == 200
        assert response.json()["meta"]["model"] == "override/model"
        assert provider.requests[0].headers["authorization"] == "Bearer stored-key"
        assert provider.request_bodies()[0]["model"] == "override/model"


class TestCredentialsEndpoint:

    def test_lifecycle(self, make_client, settings):
        client = make_client(StubProvider([ok_review()]))

        assert client.get("/credentials").json() == {"configured": False, "model": None}

        response = client.put("/credentials", json={"apiKey": "secret", "model": "m"})
        assert response.status_code == 200
        assert response.json() == {"configured": True, "model": "m"}
        assert "secret" not in response.text
        assert json.loads(settings.CREDENTIALS_FILE.read_text()) == {"apiKey": "secret", "model": "m"}

        assert client.delete("/credentials").status_code == 204
        assert client.get("/credentials").json()["configured"] is False

    def test_put_requires_both_fields(self, make_client):
        client = make_client(StubProvider([ok_review()]))

        response = client.put("/credentials", json={"apiKey": "secret"})

        assert response.status_code == 422


class TestServiceEndpoints:

    def test_health(self, make_client):
        response = make_client(StubProvider([ok_review()])).get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["timestamp"].endswith(("Z", "+00:00"))

    def test_config_exposes_limits(self, make_client):
        response = make_client(StubProvider([ok_review()])).get("/config")

        assert response.json() == {
            "rateLimit": {"max": 100, "windowMs": 60000},
            "maxContentSize": 204800,
            "openrouterTimeout": 30000,
        }

    def test_metrics_track_requests_and_provider_calls(self, make_client, metrics):
        client = make_client(StubProvider([status(429), ok_review()]))

        client.post("/review", json=REVIEW_BODY)
        data = client.get("/metrics").json()

        assert metrics.get_counter(MetricNames.OPENROUTER_CALLS, {"status": "error"}) == 1
        assert metrics.get_counter(MetricNames.OPENROUTER_CALLS, {"status": "success"}) == 1
        assert metrics.get_counter(
            MetricNames.HTTP_REQUESTS, {"route": "/review", "status": "200"}
        ) == 1
        assert "counters" in data
        assert "histograms" in data

    def test_rate_limit(self, make_client, tmp_path):
        limited = Settings(CREDENTIALS_FILE=tmp_path / "c.json", RATE_LIMIT_MAX=2)
        client = make_client(StubProvider([ok_review()]), limited)

        codes = [client.get("/health").status_code for _ in range(3)]

        assert codes == [200, 200, 429]
        assert client.get("/health").json() == {"error": "Too many requests"}
