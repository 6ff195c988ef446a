"""Configuration loading for the FieldSign signature system.

This module provides centralized configuration management:
- Load settings from environment variables and .env files
- Validate configuration using pydantic
- Provide typed access to all settings
"""

from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment.

    Uses pydantic-settings for environment variable handling with
    .env file support via python-dotenv.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Local record store configuration
    store_sqlite_path: str = Field(
        default="./data/fieldsign.db",
        description="SQLite database file path for the local record store",
    )
    signatures_key: str = Field(
        default="fieldsign.signatures",
        description="Storage key holding the plain-signature sequence",
    )
    pdf_signatures_key: str = Field(
        default="fieldsign.pdf_signatures",
        description="Storage key holding the PDF-signature sequence",
    )
    byte_encoding: Literal["int_array", "base64"] = Field(
        default="int_array",
        description="Storage form written for byte fields (both are readable)",
    )

    # Remote sync configuration
    sync_api_url: str = Field(
        default="http://localhost:8000/api",
        description="Base URL of the remote sync endpoint",
    )
    sync_api_key: str = Field(
        default="",
        description="Bearer token for the remote sync endpoint",
    )
    sync_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout per sync request in seconds",
    )

    # Connectivity configuration
    connectivity_probe_url: str = Field(
        default="http://localhost:8000/health",
        description="URL probed to decide whether the device is online",
    )
    connectivity_interval_seconds: float = Field(
        default=15.0,
        description="Interval between connectivity probes in seconds",
    )
    connectivity_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout per connectivity probe in seconds",
    )

    # Logging configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log format",
    )

    # Run mode
    run_mode: Literal["cli", "daemon"] = Field(
        default="cli",
        description="Run mode",
    )

    @field_validator(
        "sync_timeout_seconds",
        "connectivity_interval_seconds",
        "connectivity_timeout_seconds",
    )
    @classmethod
    def validate_positive_seconds(cls, v: float) -> float:
        """Ensure durations are positive."""
        if v <= 0:
            raise ValueError("durations must be positive")
        return v

    @field_validator("signatures_key", "pdf_signatures_key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        """Ensure storage keys are non-empty."""
        if not v.strip():
            raise ValueError("storage keys must be non-empty")
        return v

    @model_validator(mode="after")
    def validate_distinct_keys(self) -> "Settings":
        """The two record sequences must never share a key."""
        if self.signatures_key == self.pdf_signatures_key:
            raise ValueError("signatures_key and pdf_signatures_key must differ")
        return self


def load_settings(env_file: str | None = None) -> Settings:
    """Load application settings from environment.

    Args:
        env_file: Optional path to .env file. If not provided,
                 uses the default .env in the current directory.

    Returns:
        Validated Settings instance.

    Raises:
        ValidationError: If settings validation fails.
    """
    if env_file:
        return Settings(_env_file=env_file)  # type: ignore[call-arg]
    return Settings()


__all__ = ["Settings", "load_settings"]
