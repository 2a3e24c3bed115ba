"""
MCP entrypoint for the AI Code Review service.

Exposes the review pipeline as a single `review_code` tool over stdio,
for MCP clients such as desktop assistants. Stdout carries the protocol,
so logs go to stderr.
"""

import json
import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from ai_code_review.config import Settings, get_settings
from ai_code_review.dependencies import prepare_review
from ai_code_review.llm.errors import InputValidationError, ReviewError
from ai_code_review.llm.model import LLMClient
from ai_code_review.observability.logging import setup_logging
from ai_code_review.observability.metrics import MetricsCollector
from ai_code_review.observability.redaction import redact_secrets, redact_value
from ai_code_review.review.orchestrator import ReviewOrchestrator
from ai_code_review.storage.credentials import CredentialStore

logger = logging.getLogger(__name__)

TOOL_NAME = "review_code"

TOOL_DESCRIPTION = (
    "Analyze code for correctness, security, or performance issues. "
    "Accepts diff, raw code, or PR content. Returns risk score and issues."
)


class ReviewTool:
    """
    Backing implementation of the `review_code` tool.

    Arguments use the same field names as the HTTP API. Credentials
    missing from a call fall back to the credential store.
    """

    def __init__(
        self,
        orchestrator: ReviewOrchestrator,
        credential_store: CredentialStore,
        max_content_size: int,
    ):
        self.orchestrator = orchestrator
        self.credential_store = credential_store
        self.max_content_size = max_content_size

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        llm_client: Optional[LLMClient] = None,
        credential_store: Optional[CredentialStore] = None,
    ) -> "ReviewTool":
        llm_client = llm_client or LLMClient.from_settings(
            settings, telemetry=MetricsCollector(enabled=settings.METRICS_ENABLED)
        )
        return cls(
            orchestrator=ReviewOrchestrator.from_settings(settings, llm_client),
            credential_store=credential_store or CredentialStore(settings.CREDENTIALS_FILE),
            max_content_size=settings.MAX_CONTENT_SIZE,
        )

    async def run(self, arguments: Dict[str, Any]) -> str:
        """
        Review the given arguments and return the result as JSON text.

        Raises:
            ToolError: With the JSON error object when the review fails
        """
        try:
            review_input, credentials = prepare_review(
                arguments, self.credential_store, self.max_content_size
            )
            logger.info(f"MCP: Processing review with model {credentials.model}")
            result = await self.orchestrator.review(review_input, credentials)
        except InputValidationError as e:
            logger.info(f"MCP: Rejected review request: {e.violations}")
            raise ToolError(json.dumps(redact_value(e.to_dict()))) from e
        except ReviewError as e:
            logger.error(f"MCP: Review failed: {redact_secrets(e.message)}")
            raise ToolError(json.dumps(redact_value(e.to_dict()))) from e

        return json.dumps(result.model_dump(mode="json", exclude_none=True), indent=2)

    async def close(self) -> None:
        await self.orchestrator.llm_client.close()


def create_mcp_server(review_tool: ReviewTool) -> FastMCP:
    """Build the MCP server around a review tool."""

    @asynccontextmanager
    async def lifespan(server: FastMCP) -> AsyncIterator[None]:
        logger.info("MCP server started on stdio")
        try:
            yield
        finally:
            await review_tool.close()

    server = FastMCP("ai-code-review", lifespan=lifespan)

    @server.tool(name=TOOL_NAME, description=TOOL_DESCRIPTION)
    async def review_code(
        diff: Optional[str] = None,
        code: Optional[str] = None,
        languageHint: Optional[str] = None,
        fileName: Optional[str] = None,
        repoName: Optional[str] = None,
        ruleset: str = "correctness",
        apiKey: Optional[str] = None,
        model: Optional[str] = None,
    ) -> str:
        arguments = {
            "diff": diff,
            "code": code,
            "languageHint": languageHint,
            "fileName": fileName,
            "repoName": repoName,
            "ruleset": ruleset,
            "apiKey": apiKey,
            "model": model,
        }
        return await review_tool.run({k: v for k, v in arguments.items() if v is not None})

    return server


def run() -> None:
    """Run the MCP server on stdio."""
    settings = get_settings()
    setup_logging(settings, stream=sys.stderr)
    create_mcp_server(ReviewTool.from_settings(settings)).run()


if __name__ == "__main__":
    run()
