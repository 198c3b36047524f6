"""Standardized error handling for stream composition.

Provides error codes and structured error descriptions for stream failures.
Uses Pydantic for validation and serialization of the error payload; the
exception classes wrap that payload for raising.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Self

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator


class ErrorCode(StrEnum):
    """Standard error codes for stream failures.

    Used for programmatic error handling by stream consumers.
    """
    LIMIT_EXCEEDED = "LIMIT_EXCEEDED"
    STREAM_LOCKED = "STREAM_LOCKED"
    STREAM_CLOSED = "STREAM_CLOSED"
    UNKNOWN = "UNKNOWN"


class StreamError(BaseModel):
    """Structured description of a stream failure.

    Attributes:
        stream: Name of the stream or stage that failed
        message: Human-readable error message
        code: Machine-readable error code
        details: Optional extra diagnostic data (e.g., configured limit)
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        validate_default=True,
        json_schema_extra={
            "title": "Stream Error",
            "description": "Structured error from stream composition",
            "examples": [{
                "stream": "limited_transform",
                "message": "Exceeded chunk limit of '3'",
                "code": "LIMIT_EXCEEDED",
                "details": {"size": 3},
            }],
        },
    )

    stream: Annotated[str, Field(
        min_length=1,
        description="Name of the stream or stage that produced the error",
    )]
    message: Annotated[str, Field(
        min_length=1,
        description="Human-readable error message",
    )]
    code: ErrorCode = Field(
        default=ErrorCode.UNKNOWN,
        description="Machine-readable error classification",
    )
    details: dict[str, object] = Field(
        default_factory=dict,
        description="Optional diagnostic data",
    )

    @field_validator("message", mode="before")
    @classmethod
    def _ensure_message(cls, v: str | Exception) -> str:
        """Accept Exception objects and extract message."""
        return str(v) if isinstance(v, Exception) else v

    def render(self) -> str:
        """Format error for display."""
        return f"[{self.code}] {self.stream}: {self.message}"

    __str__ = render


class StreamException(Exception):
    """Exception wrapping a StreamError for raising."""

    def __init__(self, error: StreamError) -> None:
        self.error = error
        super().__init__(error.message)

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @classmethod
    def create(
        cls,
        stream: str,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        **details: object,
    ) -> Self:
        """Create stream exception."""
        return cls(StreamError(stream=stream, message=message, code=code, details=details))


class LimitExceededError(StreamException):
    """Raised when a limited stream receives more chunks than its configured size."""

    def __init__(self, size: PositiveInt, stream: str = "limited_transform") -> None:
        self.size = size
        super().__init__(StreamError(
            stream=stream,
            message=f"Exceeded chunk limit of '{size}'",
            code=ErrorCode.LIMIT_EXCEEDED,
            details={"size": size},
        ))


class StreamLockedError(StreamException):
    """Raised when a stream already owned by a reader is acquired again."""

    def __init__(self, message: str = "ReadableStream is locked to a reader", stream: str = "readable") -> None:
        super().__init__(StreamError(stream=stream, message=message, code=ErrorCode.STREAM_LOCKED))
