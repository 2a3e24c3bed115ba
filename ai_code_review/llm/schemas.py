"""
Structured schemas for review requests and LLM review outputs.

Requests arrive from untrusted callers and responses from an untrusted
model, so both sides are validated by these Pydantic models before
anything else touches them.
"""

from enum import Enum
from typing import Annotated, List, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic_core import PydanticCustomError


MAX_CONTENT_SIZE = 204_800  # 200KB


class Ruleset(str, Enum):
    """Review focus that frames the prompt."""
    CORRECTNESS = "correctness"
    SECURITY = "security"
    PERFORMANCE = "performance"


class Severity(str, Enum):
    """Issue severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def _check_content_size(value: Optional[str], info: ValidationInfo, label: str) -> Optional[str]:
    if value is None:
        return value
    max_size = MAX_CONTENT_SIZE
    if info.context and "max_content_size" in info.context:
        max_size = info.context["max_content_size"]
    if len(value.encode("utf-8")) > max_size:
        raise PydanticCustomError(
            "content_too_large",
            "{label} exceeds {limit}KB",
            {"label": label, "limit": max_size // 1024},
        )
    return value


# ============================================================================
# Request models
# ============================================================================

class PRInput(BaseModel):
    """Pull request content submitted for review."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    diff: str

    @field_validator("diff")
    @classmethod
    def validate_diff_size(cls, v: str, info: ValidationInfo) -> str:
        return _check_content_size(v, info, "PR diff")


class ReviewInput(BaseModel):
    """
    Review request content.

    Exactly the fields that shape the prompt. Credentials travel
    separately (see `Credentials`) and are ignored here.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    ruleset: Ruleset = Ruleset.CORRECTNESS
    diff: Optional[str] = None
    code: Optional[str] = None
    language_hint: Optional[str] = Field(None, alias="languageHint")
    pr: Optional[PRInput] = None
    file_name: Optional[str] = Field(None, alias="fileName")
    repo_name: Optional[str] = Field(None, alias="repoName")

    @field_validator("diff")
    @classmethod
    def validate_diff_size(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        return _check_content_size(v, info, "Diff")

    @field_validator("code")
    @classmethod
    def validate_code_size(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        return _check_content_size(v, info, "Code")

    @model_validator(mode="after")
    def require_content(self) -> "ReviewInput":
        """At least one of diff, code or pr must carry content."""
        if not (self.diff or self.code or self.pr):
            raise PydanticCustomError(
                "missing_content",
                "Provide at least one of: diff, code, or pr",
            )
        return self


class Credentials(BaseModel):
    """OpenRouter credentials for a single review call."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    api_key: str = Field(..., min_length=1, alias="apiKey", repr=False)
    model: str = Field(..., min_length=1)


class ChatMessage(BaseModel):
    """Single chat-completions message."""

    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"]
    content: str


# ============================================================================
# Response models
# ============================================================================

LineNumber = Annotated[StrictInt, Field(ge=0)]


class ReviewIssue(BaseModel):
    """Single issue identified in the reviewed code."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(..., description="Free-text category, e.g. null-check")
    severity: Severity
    file: str
    lines: List[LineNumber]
    explanation: str
    suggested_fix: str
    confidence: float = Field(..., ge=0.0, le=1.0, strict=True)


class MissingTestArea(BaseModel):
    """Area lacking test coverage, with suggested cases."""

    model_config = ConfigDict(frozen=True)

    area: str
    cases: List[str]


class ReviewMeta(BaseModel):
    """Metadata about the model call behind a review."""

    model_config = ConfigDict(frozen=True)

    model: str
    latency_ms: StrictInt = Field(..., ge=0)
    prompt_tokens: Optional[StrictInt] = Field(None, ge=0)
    completion_tokens: Optional[StrictInt] = Field(None, ge=0)


class ReviewOutput(BaseModel):
    """Complete, validated review returned to callers."""

    model_config = ConfigDict(frozen=True)

    risk_score: StrictInt = Field(..., ge=0, le=100)
    summary: str
    issues: List[ReviewIssue]
    missing_tests: List[MissingTestArea]
    questions_for_human: List[str]
    meta: ReviewMeta
