"""Round-robin stream combinators.

Merge several ReadableStreams into one, taking one chunk from each source per
round in index order. Reads within a round are sequential: a source is not read
until the previous source has delivered its chunk, so a fast source never gets
more than one chunk ahead of a slow one.

Key Operations:
    - early_zip_streams: Stop everything as soon as any source ends
    - zip_streams: Keep going with the remaining sources until all end

Example:
    >>> zipped = early_zip_streams(
    ...     ReadableStream.from_iterable(["1", "2", "3", "4"]),
    ...     ReadableStream.from_iterable(["a", "b"]),
    ... )
    >>> await zipped.collect()
    ['1', 'a', '2', 'b', '3']
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterable, Awaitable, Iterable
from typing import Callable, Generic, TypeVar

from streamkit.io.streaming import ReadableStream, StreamController, StreamReader
from streamkit.runtime.observability.logging import BoundLogger, get_logger

from .wait import gather_settled, settle_all

T = TypeVar("T")

StreamLike = ReadableStream[T] | Iterable[T] | AsyncIterable[T]

__all__ = [
    "early_zip_streams",
    "zip_streams",
]

_log = get_logger("streamkit.zip")


def _as_stream(stream: StreamLike[T]) -> ReadableStream[T]:
    return stream if isinstance(stream, ReadableStream) else ReadableStream.from_iterable(stream)


def _lock_all(streams: tuple[StreamLike[T], ...], op: str) -> list[StreamReader[T]]:
    if not streams:
        raise ValueError(f"{op}() requires at least one stream")
    return [_as_stream(s).get_reader() for s in streams]


async def _abort(readers: dict[int, StreamReader[T]], failed: int, exc: BaseException, log: BoundLogger) -> None:
    """Release every reader except the one whose read failed, keeping exc as the outcome."""
    others = [(i, r) for i, r in readers.items() if i != failed]
    settled = await gather_settled(*(r.cancel(exc) for _, r in others))
    for (i, _), s in zip(others, settled):
        if s.is_rejected:
            log.warning("cancel failed while aborting", index=i, error=repr(s.error))


class _RoundRobinSource(Generic[T]):
    """Base for merger sources: owns the single batch that releases the readers.

    The batch runs as its own task. Cancelling the pull while the batch is in
    flight leaves it running, and a later consumer cancel awaits the same task
    so it still sees every cancel settle and any failure it raised.
    """

    __slots__ = ("_releasing", "_log")

    def __init__(self, log: BoundLogger) -> None:
        self._releasing: asyncio.Future[object] | None = None
        self._log = log

    async def _settle(self, batch: Callable[[], Awaitable[object]]) -> None:
        if self._releasing is None:
            self._releasing = asyncio.ensure_future(batch())
        await asyncio.shield(self._releasing)


class _EarlyZipSource(_RoundRobinSource[T]):
    """Underlying source performing one early-terminating round per pull."""

    __slots__ = ("_readers",)

    def __init__(self, readers: list[StreamReader[T]]) -> None:
        super().__init__(_log.bind_stream("early_zip", sources=len(readers)))
        self._readers = readers

    async def pull(self, controller: StreamController[T]) -> None:
        for i, reader in enumerate(self._readers):
            try:
                result = await reader.read()
            except Exception as exc:
                await self._settle(lambda: _abort(dict(enumerate(self._readers)), i, exc, self._log))
                raise
            if result.done:
                self._log.debug("stream exhausted", index=i)
                await self._release(f"Stream at index {i} ended")
                controller.close()
                return
            controller.enqueue(result.value)  # type: ignore[arg-type]

    async def cancel(self, reason: object) -> None:
        await self._release(reason)

    async def _release(self, reason: object) -> None:
        if self._releasing is None:
            self._log.debug("cancelling sources", reason=str(reason))
        await self._settle(lambda: settle_all(*(reader.cancel(reason) for reader in self._readers)))


class _ZipSource(_RoundRobinSource[T]):
    """Underlying source performing one round over the still-active sources per pull."""

    __slots__ = ("_active",)

    def __init__(self, readers: list[StreamReader[T]]) -> None:
        super().__init__(_log.bind_stream("zip", sources=len(readers)))
        self._active: dict[int, StreamReader[T]] = dict(enumerate(readers))

    async def pull(self, controller: StreamController[T]) -> None:
        for i, reader in list(self._active.items()):
            try:
                result = await reader.read()
            except Exception as exc:
                active, self._active = self._active, {}
                await self._settle(lambda: _abort(active, i, exc, self._log))
                raise
            if result.done:
                self._log.debug("stream exhausted", index=i, remaining=len(self._active) - 1)
                del self._active[i]
                reader.release_lock()
                continue
            controller.enqueue(result.value)  # type: ignore[arg-type]
        if not self._active:
            controller.close()

    async def cancel(self, reason: object) -> None:
        if self._releasing is None:
            self._log.debug("cancelling sources", reason=str(reason), count=len(self._active))
        active, self._active = self._active, {}
        await self._settle(lambda: settle_all(*(reader.cancel(reason) for reader in active.values())))


def early_zip_streams(*streams: StreamLike[T]) -> ReadableStream[T]:
    """Merge streams round-robin, ending as soon as any stream ends.

    Each pull reads one chunk from every stream in order and enqueues it
    immediately. When a stream reports end-of-stream, all streams are cancelled
    concurrently with reason ``"Stream at index {i} ended"`` and the output
    closes; chunks already read in that round are kept.

    Args:
        *streams: ReadableStreams (or iterables, wrapped on the fly); order is significant

    Raises:
        ValueError: If no streams are given

    Example:
        >>> zipped = early_zip_streams(
        ...     ReadableStream.from_iterable(["1"]),
        ...     ReadableStream.from_iterable(["a", "b"]),
        ...     ReadableStream.from_iterable(["A", "B", "C"]),
        ... )
        >>> await zipped.collect()
        ['1', 'a', 'A']
    """
    return ReadableStream(_EarlyZipSource(_lock_all(streams, "early_zip_streams")), name="early_zip")


def zip_streams(*streams: StreamLike[T]) -> ReadableStream[T]:
    """Merge streams round-robin until every stream has ended.

    Exhausted streams drop out of later rounds; the rest keep interleaving.
    """
    return ReadableStream(_ZipSource(_lock_all(streams, "zip_streams")), name="zip")
