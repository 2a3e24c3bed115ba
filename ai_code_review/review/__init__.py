"""Review pipeline orchestration."""

from ai_code_review.review.orchestrator import ReviewOrchestrator

__all__ = ["ReviewOrchestrator"]
