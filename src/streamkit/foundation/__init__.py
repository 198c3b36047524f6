"""Foundation layer: errors and configuration shared by every stream component."""

from .config import LimitSettings, LoggingSettings, StreamkitSettings, clear_settings_cache, get_settings
from .errors import ErrorCode, LimitExceededError, StreamError, StreamException, StreamLockedError

__all__ = [
    "ErrorCode", "StreamError", "StreamException", "LimitExceededError", "StreamLockedError",
    "LimitSettings", "LoggingSettings", "StreamkitSettings", "clear_settings_cache", "get_settings",
]
