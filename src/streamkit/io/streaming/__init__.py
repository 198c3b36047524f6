"""Pull-based streams, transform stages and the chunk limiter."""

from .limited import LimitedTransformOptions, LimitedTransformStream
from .stream import ReadableStream, ReadResult, StreamController, StreamReader, StreamState
from .transform import TransformController, TransformStream

__all__ = [
    # Readable side
    "ReadableStream",
    "ReadResult",
    "StreamController",
    "StreamReader",
    "StreamState",
    # Transforms
    "TransformController",
    "TransformStream",
    "LimitedTransformOptions",
    "LimitedTransformStream",
]
