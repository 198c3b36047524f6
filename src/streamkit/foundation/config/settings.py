"""Environment-based configuration using pydantic-settings.

Provides type-safe, validated configuration from environment variables
with sensible defaults. Supports .env files and nested configuration.

Example:
    >>> from streamkit.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.logging.level
    'INFO'
    >>> settings.limits.error
    False

    # Or with environment variables:
    # STREAMKIT_LOG_LEVEL=DEBUG
    # STREAMKIT_LIMIT_ERROR=true
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STREAMKIT_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "none"] = "console"
    colors: bool | None = Field(default=None, description="Force console colors (None = auto-detect)")

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class LimitSettings(BaseSettings):
    """Defaults for limited transforms."""

    model_config = SettingsConfigDict(
        env_prefix="STREAMKIT_LIMIT_",
        extra="ignore",
    )

    error: bool = Field(
        default=False,
        description="Raise LimitExceededError on overflow instead of closing the stream",
    )


class StreamkitSettings(BaseSettings):
    """Root settings for streamkit.

    Loads configuration from environment variables with STREAMKIT_ prefix.
    Supports nested configuration and .env files.

    Example environment variables:
        STREAMKIT_LOG_LEVEL=DEBUG
        STREAMKIT_LOG_FORMAT=json
        STREAMKIT_LIMIT_ERROR=true
    """

    model_config = SettingsConfigDict(
        env_prefix="STREAMKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    # Nested settings (loaded with STREAMKIT_LOG_, STREAMKIT_LIMIT_)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    limits: LimitSettings = Field(default_factory=LimitSettings)


@lru_cache(maxsize=1)
def get_settings() -> StreamkitSettings:
    """Get the global settings instance (cached)."""
    return StreamkitSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing).

    After calling this, the next get_settings() call will
    reload configuration from environment.
    """
    get_settings.cache_clear()
