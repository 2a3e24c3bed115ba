"""
AI Code Review: LLM-backed risk analysis for code, diffs and pull requests.
"""

__version__ = "1.0.0"
