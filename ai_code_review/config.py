"""
Configuration module for the AI Code Review service.

Loads environment variables and provides centralized settings.
API keys are never configured here: they arrive per request or come
from the credential store.
"""

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CREDENTIALS_FILE = Path.home() / ".config" / "ai-code-review" / "credentials.json"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Values can also be provided through a `.env` file in the working
    directory.
    """

    # Application
    ENVIRONMENT: str = Field(default="development")
    PORT: int = Field(default=3000)
    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins",
    )

    # Rate limiting
    RATE_LIMIT_MAX: int = Field(default=100, ge=1)
    RATE_LIMIT_WINDOW_MS: int = Field(default=60_000, ge=1)

    # Request limits
    MAX_CONTENT_SIZE: int = Field(
        default=204_800,  # 200KB
        ge=1,
        description="Maximum size in bytes of diff, code or PR diff",
    )
    MAX_BODY_SIZE: int = Field(default=256_000, ge=1)

    # OpenRouter
    OPENROUTER_BASE_URL: str = Field(default="https://openrouter.ai/api/v1")
    OPENROUTER_TIMEOUT_MS: int = Field(default=30_000, ge=1)
    OPENROUTER_MAX_RETRIES: int = Field(default=3, ge=0)
    RETRY_BASE_DELAY_MS: int = Field(default=1_000, ge=0)
    RETRY_MAX_DELAY_MS: int = Field(default=10_000, ge=0)

    # Generation parameters
    LLM_MAX_TOKENS: int = Field(default=4096, ge=1)
    LLM_TEMPERATURE: float = Field(default=0.1, ge=0.0, le=2.0)

    # Credential persistence
    CREDENTIALS_FILE: Path = Field(default=DEFAULT_CREDENTIALS_FILE)

    # Observability
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="text")
    METRICS_ENABLED: bool = Field(default=True)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure the log level is one the logging module knows."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v.upper()

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v.lower() not in ("text", "json"):
            raise ValueError("LOG_FORMAT must be 'text' or 'json'")
        return v.lower()

    @property
    def allowed_origins(self) -> List[str]:
        """Parse comma-separated ALLOWED_ORIGINS into a list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def request_timeout_seconds(self) -> float:
        return self.OPENROUTER_TIMEOUT_MS / 1000

    @property
    def rate_limit_window_seconds(self) -> float:
        return self.RATE_LIMIT_WINDOW_MS / 1000


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
