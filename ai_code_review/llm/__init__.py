"""
LLM integration module for code review.

This module provides:
- Request and response schemas
- Deterministic prompts
- The OpenRouter client and its backoff policy
- Validation of caller input and model output
"""

from ai_code_review.llm.model import LLMClient, LLMCompletion
from ai_code_review.llm.retry import RetryPolicy, retry_with_backoff
from ai_code_review.llm.schemas import (
    ChatMessage,
    Credentials,
    MissingTestArea,
    PRInput,
    ReviewInput,
    ReviewIssue,
    ReviewMeta,
    ReviewOutput,
    Ruleset,
    Severity,
)

__all__ = [
    "ChatMessage",
    "Credentials",
    "LLMClient",
    "LLMCompletion",
    "MissingTestArea",
    "PRInput",
    "RetryPolicy",
    "ReviewInput",
    "ReviewIssue",
    "ReviewMeta",
    "ReviewOutput",
    "Ruleset",
    "Severity",
    "retry_with_backoff",
]
