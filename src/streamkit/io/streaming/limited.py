"""Chunk-count limiting transform.

LimitedTransformStream forwards at most ``size`` chunks. On the chunk that
would exceed the limit it either closes the output cleanly (default) or fails
with LimitExceededError when ``options.error`` is set.

Example:
    >>> limited = ReadableStream.from_iterable(["1234", "5678"]).pipe_through(
    ...     LimitedTransformStream(1),
    ... )
    >>> await limited.collect()
    ['1234']

    >>> strict = ReadableStream.from_iterable(["1234", "5678"]).pipe_through(
    ...     LimitedTransformStream(1, {"error": True}),
    ... )
    >>> await strict.collect()
    Traceback (most recent call last):
    LimitExceededError: Exceeded chunk limit of '1'
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from streamkit.foundation.config import get_settings
from streamkit.foundation.errors import LimitExceededError
from streamkit.runtime.observability.logging import get_logger

from .transform import TransformController, TransformStream

T = TypeVar("T")

_SIZE: TypeAdapter[int] = TypeAdapter(Annotated[int, Field(strict=True, gt=0)])

_log = get_logger("streamkit.limited")


class LimitedTransformOptions(BaseModel):
    """Options for LimitedTransformStream.

    Attributes:
        error: Raise LimitExceededError instead of closing the stream when the
            limit is about to be exceeded
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    error: bool = Field(default=False, description="Raise on overflow instead of closing")

    @classmethod
    def from_settings(cls) -> LimitedTransformOptions:
        """Options using the STREAMKIT_LIMIT_* overflow policy."""
        return cls(error=get_settings().limits.error)


class LimitedTransformStream(TransformStream[T, T]):
    """Transform that reads and enqueues at most ``size`` chunks.

    Args:
        size: Maximum number of chunks to forward (positive integer)
        options: LimitedTransformOptions or a mapping such as {"error": True};
            defaults to closing on overflow. Pass
            ``LimitedTransformOptions.from_settings()`` to follow STREAMKIT_LIMIT_ERROR
    """

    def __init__(
        self,
        size: int,
        options: LimitedTransformOptions | Mapping[str, bool] | None = None,
    ) -> None:
        super().__init__(name="limited_transform")
        self.size = _SIZE.validate_python(size)
        if options is None:
            options = LimitedTransformOptions()
        elif not isinstance(options, LimitedTransformOptions):
            options = LimitedTransformOptions.model_validate(dict(options))
        self.options = options
        self._read = 0

    @property
    def count(self) -> int:
        """Chunks forwarded so far."""
        return self._read

    async def transform(self, chunk: T, controller: TransformController[T]) -> None:
        if self._read + 1 > self.size:
            _log.debug("chunk limit reached", size=self.size, error=self.options.error)
            if self.options.error:
                raise LimitExceededError(self.size)
            controller.terminate()
            return
        self._read += 1
        controller.enqueue(chunk)
