"""Configuration management using pydantic-settings.

Provides environment-based configuration with type safety and validation.
"""

from .settings import (
    LimitSettings,
    LoggingSettings,
    StreamkitSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "LimitSettings",
    "LoggingSettings",
    "StreamkitSettings",
    "clear_settings_cache",
    "get_settings",
]
