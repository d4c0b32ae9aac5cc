"""
Configuration management using Pydantic Settings.
All environment variables are validated at startup.
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===================
    # MoonClerk Configuration
    # ===================
    moonclerk_api_key: Optional[str] = Field(default=None, description="MoonClerk API token")
    moonclerk_api_url: str = Field(
        default="https://api.moonclerk.com",
        description="MoonClerk API base URL"
    )
    moonclerk_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Per-request timeout in seconds for MoonClerk calls"
    )

    # ===================
    # API Server
    # ===================
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000, ge=1, le=65535)

    # ===================
    # Logging
    # ===================
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure the log level is one the logging module knows."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def is_moonclerk_configured(self) -> bool:
        return bool(self.moonclerk_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export
settings = get_settings()
