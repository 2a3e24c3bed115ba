"""
Constrained, schema-driven prompts for LLM-based code review.

The system prompt is fixed and never includes caller text. The user
prompt is rendered deterministically from a validated ReviewInput, so
the same request always produces byte-identical messages.
"""

from typing import List, Tuple

from ai_code_review.llm.schemas import ChatMessage, ReviewInput


SYSTEM_PROMPT = """You are a senior code reviewer AI. You analyze code and identify potential issues.

CRITICAL RULES:
1. Respond with valid JSON only. No markdown, no explanations outside JSON.
2. You are NOT a test runner. Never claim code "passes" or "fails".
3. Identify RISKS, CONCERNS, and SUGGESTIONS based on static analysis.
4. If context is insufficient, add questions to "questions_for_human" instead of guessing.
5. Be specific: reference files and line numbers when available.
6. Confidence (0.0-1.0) should reflect your certainty.

OUTPUT SCHEMA:
{
  "risk_score": <0-100, 0=low risk, 100=critical>,
  "summary": "<one paragraph summary>",
  "issues": [
    {
      "type": "<category: null-check, type-error, security, etc>",
      "severity": "<low|medium|high|critical>",
      "file": "<filename>",
      "lines": [<line numbers>],
      "explanation": "<why this is a concern>",
      "suggested_fix": "<actionable fix>",
      "confidence": <0.0-1.0>
    }
  ],
  "missing_tests": [
    { "area": "<what needs testing>", "cases": ["<test case>"] }
  ],
  "questions_for_human": ["<clarifying questions>"]
}

SEVERITY:
- critical: Security vulnerabilities, data loss, crashes
- high: Bugs causing runtime errors or incorrect behavior
- medium: Code smells, edge cases, maintainability
- low: Style issues, minor improvements"""


def _fenced(content: str, tag: str = "") -> List[str]:
    return [f"```{tag}", content, "```"]


def build_user_prompt(review_input: ReviewInput) -> str:
    """
    Build the user prompt for a review request.

    Layout: ruleset focus line, optional repository/language/file lines,
    a blank separator, then the content block. PR content wins over a
    bare diff, which wins over a code snippet.

    Args:
        review_input: Validated review request

    Returns:
        Formatted prompt string
    """
    prompt_parts = [f"Analyze this code for {review_input.ruleset.value} concerns."]

    if review_input.repo_name:
        prompt_parts.append(f"Repository: {review_input.repo_name}")
    if review_input.language_hint:
        prompt_parts.append(f"Language: {review_input.language_hint}")
    if review_input.file_name:
        prompt_parts.append(f"File: {review_input.file_name}")

    prompt_parts.append("")

    if review_input.pr:
        prompt_parts.append(f"PR Title: {review_input.pr.title}")
        if review_input.pr.description:
            prompt_parts.append(f"PR Description: {review_input.pr.description}")
        prompt_parts.append("")
        prompt_parts.extend(_fenced(review_input.pr.diff, "diff"))
    elif review_input.diff:
        prompt_parts.extend(_fenced(review_input.diff, "diff"))
    elif review_input.code:
        prompt_parts.extend(_fenced(review_input.code, review_input.language_hint or ""))

    prompt_parts.append("")
    prompt_parts.append("Respond with JSON only.")

    return "\n".join(prompt_parts)


def build_messages(review_input: ReviewInput) -> Tuple[ChatMessage, ChatMessage]:
    """Return the (system, user) message pair for a review request."""
    return (
        ChatMessage(role="system", content=SYSTEM_PROMPT),
        ChatMessage(role="user", content=build_user_prompt(review_input)),
    )
