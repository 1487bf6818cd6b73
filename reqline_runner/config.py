"""
Configuration management for Reqline Runner.

Settings are read from environment variables prefixed with ``REQLINE_``
(or a local ``.env`` file) and cached for the lifetime of the process.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Persisted suites, vault items and request history share one TTL (4 hours)
DEFAULT_PERSISTED_TTL_SECONDS = 4 * 60 * 60


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="REQLINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_url: str = "https://reqline-cgup.onrender.com"
    database_url: str = "sqlite:///./reqline_runner.db"
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    inter_call_delay_seconds: float = Field(default=0.5, ge=0)
    persisted_ttl_seconds: int = Field(default=DEFAULT_PERSISTED_TTL_SECONDS, gt=0)
    rate_limit_identifier: str = "user"
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Return the cached application settings."""
    return Settings()
