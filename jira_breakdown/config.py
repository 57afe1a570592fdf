"""
Configuration management using Pydantic Settings.

The four credentials (Groq key, Jira URL, Jira email, Jira API token) are
read from environment variables or a .env file. They are validated lazily
by `require_complete()` so the app can start without them and report a
configuration error on the first request instead.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Credentials
    groq_key: str = Field(default="", description="Groq API key")
    jira_url: str = Field(default="", description="Jira site, e.g. https://acme.atlassian.net")
    jira_email: str = Field(default="", description="Jira account email")
    jira_token: str = Field(default="", description="Jira API token")

    # Groq
    groq_api_url: str = Field(
        default="https://api.groq.com/openai/v1/chat/completions",
        description="Chat completions endpoint",
    )
    groq_model: str = Field(default="llama-3.3-70b-versatile", description="Model name")
    groq_temperature: float = Field(default=0.4, description="Sampling temperature")

    # Transport. None keeps the httpx default.
    http_timeout: Optional[float] = Field(default=None, description="Request timeout in seconds")

    # Server
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=False, description="Emit JSON logs instead of console output")
    cors_origins: List[str] = Field(default=["*"], description="CORS allowed origins")

    @field_validator("jira_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v.upper()

    @property
    def browse_url(self) -> str:
        """Base URL for human-facing issue links."""
        return f"{self.jira_url}/browse"

    def require_complete(self) -> None:
        """
        Raise ConfigurationError unless every credential is present.

        Called before any network call is attempted.
        """
        missing = [
            name for name in ("groq_key", "jira_url", "jira_email", "jira_token")
            if not getattr(self, name).strip()
        ]
        if missing:
            raise ConfigurationError(
                "Please configure your credentials first. Missing: " + ", ".join(missing)
            )
        if not self.jira_url.startswith("https://"):
            raise ConfigurationError("Jira URL must start with https://")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
