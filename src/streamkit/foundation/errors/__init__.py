"""Unified error handling for streamkit.

- ErrorCode: Standard error codes for stream failures
- StreamError/StreamException: Structured errors and exceptions
- LimitExceededError: Overflow failure of a limited transform
- StreamLockedError: Second reader acquired on an exclusive stream
"""

from typing import Any

from .errors import ErrorCode, LimitExceededError, StreamError, StreamException, StreamLockedError

# JSON type aliases used by the structured logger
JsonPrimitive = str | int | float | bool | None
JsonValue = JsonPrimitive | list[Any] | dict[str, Any]
JsonDict = dict[str, Any]

__all__ = [
    # Core errors
    "ErrorCode", "StreamError", "StreamException",
    # Stream failures
    "LimitExceededError", "StreamLockedError",
    # JSON aliases
    "JsonPrimitive", "JsonValue", "JsonDict",
]
