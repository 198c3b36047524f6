"""streamkit - Composable pull-based async streams.

Backpressure-aware stream composition on asyncio: readable streams with
exclusive readers, transform stages, round-robin mergers that stop early, and a
chunk-count limiter.

Quick Start:
    >>> from streamkit import ReadableStream, early_zip_streams, LimitedTransformStream
    >>>
    >>> merged = early_zip_streams(
    ...     ReadableStream.from_iterable(["1", "2"]),
    ...     ReadableStream.from_iterable(["a", "b", "c", "d"]),
    ... )
    >>> await merged.collect()
    ['1', 'a', '2', 'b']
    >>>
    >>> limited = ReadableStream.from_iterable(range(10)).pipe_through(LimitedTransformStream(3))
    >>> await limited.collect()
    [0, 1, 2]

Strict Limits:
    >>> strict = ReadableStream.from_iterable(range(10)).pipe_through(
    ...     LimitedTransformStream(3, {"error": True}),
    ... )
    >>> await strict.collect()  # raises LimitExceededError after 0, 1, 2

Configuration (environment):
    STREAMKIT_LOG_LEVEL=DEBUG     # log exhaustion, cancellation and limits (or configure_logging(level=...))
    STREAMKIT_LOG_FORMAT=json
    STREAMKIT_LIMIT_ERROR=true    # policy for LimitedTransformOptions.from_settings()
"""

from __future__ import annotations

__version__ = "0.1.0"

# Errors
from .foundation.errors import ErrorCode, LimitExceededError, StreamError, StreamException, StreamLockedError

# Settings
from .foundation.config import StreamkitSettings, clear_settings_cache, get_settings

# Streams
from .io.streaming import (
    LimitedTransformOptions,
    LimitedTransformStream,
    ReadableStream,
    ReadResult,
    StreamController,
    StreamReader,
    StreamState,
    TransformController,
    TransformStream,
)

# Combinators
from .runtime.concurrency import early_zip_streams, gather_settled, settle_all, zip_streams

# Logging
from .runtime.observability import configure_logging, get_logger, log_context

__all__ = [
    "__version__",
    # Errors
    "ErrorCode",
    "StreamError",
    "StreamException",
    "LimitExceededError",
    "StreamLockedError",
    # Settings
    "StreamkitSettings",
    "get_settings",
    "clear_settings_cache",
    # Streams
    "ReadableStream",
    "ReadResult",
    "StreamController",
    "StreamReader",
    "StreamState",
    "TransformController",
    "TransformStream",
    "LimitedTransformOptions",
    "LimitedTransformStream",
    # Combinators
    "early_zip_streams",
    "zip_streams",
    "gather_settled",
    "settle_all",
    # Logging
    "configure_logging",
    "get_logger",
    "log_context",
]
