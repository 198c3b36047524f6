"""Concurrency primitives for stream composition.

Key Components:
    - Wait strategies: gather_settled, settle_all
    - Stream combinators: early_zip_streams, zip_streams

Design Philosophy:
    - Cooperative: single-threaded asyncio, every read/cancel is an await
    - Sequential rounds: reads within a round never overlap
    - Concurrent release: cancellation batches run together and all settle
      before a failure propagates

Example:
    >>> from streamkit.runtime.concurrency import early_zip_streams
    >>> merged = early_zip_streams(stream_a, stream_b)
    >>> async for item in merged:
    ...     handle(item)
"""

from __future__ import annotations

# Wait strategies
from .wait import Settled, SettledStatus, gather_settled, settle_all

# Stream combinators
from .stream import early_zip_streams, zip_streams

__all__ = [
    # Wait strategies
    "Settled",
    "SettledStatus",
    "gather_settled",
    "settle_all",
    # Streams
    "early_zip_streams",
    "zip_streams",
]
