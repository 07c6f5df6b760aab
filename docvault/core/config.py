from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    project_name: str = "Document Vault API"
    api_version: str = "0.1.0"
    database_url: str = Field(default="sqlite+pysqlite:///./docvault.db")
    auto_create_tables: bool = Field(
        default=True, description="Create missing tables on startup"
    )

    # Debug mode for detailed error messages (set DEBUG_MODE=true in .env for development)
    debug_mode: bool = Field(default=False)

    # Logging configuration
    log_level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    log_format: str = Field(default="json", description="Log format: 'json' or 'text'")

    # Required: the process refuses to start without a signing secret
    jwt_secret: str = Field(min_length=1, description="HMAC secret for identity tokens")
    jwt_algorithm: str = Field(default="HS256")

    # Blob storage
    upload_dir: str = Field(default="./uploads", description="Directory for document content")
    max_upload_size: int = Field(
        default=10 * 1024 * 1024, gt=0, description="Maximum upload size in bytes"
    )

    # External summarization service
    summarizer_url: str | None = Field(
        default=None, description="Endpoint accepting {'text': ...} and returning {'summary': ...}"
    )
    summarizer_api_key: str | None = Field(default=None)
    summarizer_timeout_seconds: float = Field(default=30.0, gt=0)
    summary_max_chars: int = Field(default=20000, gt=0)

    # Expired share reconciliation
    share_sweep_interval_seconds: int = Field(default=3600, gt=0)

    @field_validator("jwt_secret")
    @classmethod
    def validate_jwt_secret(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("JWT_SECRET must not be blank")
        return value

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, value: str) -> str:
        if value.lower() not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return value.lower()

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
