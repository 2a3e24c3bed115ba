"""
API package for the AI Code Review service.

This package contains all API route handlers.
"""

from ai_code_review.api import credentials, health, review

__all__ = ["credentials", "health", "review"]
