"""Pull-based readable streams with exclusive readers and cancellation.

A ReadableStream wraps an *underlying source*: any object with optional
``start(controller)``, ``pull(controller)`` and ``cancel(reason)`` hooks (sync
or async). The stream calls ``pull`` only when a reader is waiting and its
queue is empty, so sources never run ahead of their consumer by more than what
one pull enqueues.

Lifecycle:
    READABLE -> CLOSED   (controller.close(), or cancel by the consumer)
    READABLE -> ERRORED  (controller.error(exc), or a hook raised)

Example:
    >>> stream = ReadableStream.from_iterable(["a", "b"])
    >>> await stream.collect()
    ['a', 'b']

    >>> reader = ReadableStream.from_iterable(range(3)).get_reader()
    >>> await reader.read()
    ReadResult(done=False, value=0)
    >>> await reader.cancel("enough")
"""

from __future__ import annotations

import asyncio
import inspect
from collections import deque
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Generic, TypeVar

from streamkit.foundation.errors import ErrorCode, StreamException, StreamLockedError
from streamkit.runtime.observability.logging import get_logger

if TYPE_CHECKING:
    from .transform import TransformStream

T = TypeVar("T")
U = TypeVar("U")

_log = get_logger("streamkit.stream")


class StreamState(StrEnum):
    """Stream lifecycle states."""
    READABLE = "readable"  # May still yield items
    CLOSED = "closed"      # End-of-stream reached or released by cancel
    ERRORED = "errored"    # Holds a stored exception


@dataclass(slots=True, frozen=True)
class ReadResult(Generic[T]):
    """Outcome of a single read: a value, or end-of-stream when done is True."""
    done: bool
    value: T | None = None


async def _maybe_await(value: object) -> object:
    if inspect.isawaitable(value):
        return await value
    return value


class StreamController(Generic[T]):
    """Handle given to underlying sources for feeding their stream."""

    __slots__ = ("_stream",)

    def __init__(self, stream: ReadableStream[T]) -> None:
        self._stream = stream

    def enqueue(self, chunk: T) -> None:
        """Append a chunk to the stream's queue. Synchronous, never suspends."""
        self._stream._enqueue(chunk)

    def close(self) -> None:
        """End the stream cleanly once queued chunks are drained."""
        self._stream._close()

    def error(self, exc: BaseException) -> None:
        """Move the stream to its errored state."""
        self._stream._error(exc)


class ReadableStream(Generic[T]):
    """Ordered, pull-based async stream consumed through one exclusive reader.

    Supports ``read()``/``cancel()`` directly, ``async for`` iteration,
    ``collect()`` to drain, and ``pipe_through()`` to apply a TransformStream.
    Closing an iterator early (``aclose()`` or ``contextlib.aclosing``) cancels the stream.
    """

    def __init__(self, source: object | None = None, *, name: str = "readable") -> None:
        self.name = name
        self._source = source
        self._controller: StreamController[T] = StreamController(self)
        self._queue: deque[T] = deque()
        self._state = StreamState.READABLE
        self._stored_error: BaseException | None = None
        self._reader: StreamReader[T] | None = None
        self._changed = asyncio.Event()
        self._pull_task: asyncio.Task[None] | None = None
        self._started = False

    def __repr__(self) -> str:
        return f"ReadableStream(name={self.name!r}, state={self._state}, locked={self.locked})"

    # ─────────────────────────────────────────────────────────────────────
    # Construction helpers
    # ─────────────────────────────────────────────────────────────────────

    @classmethod
    def from_iterable(cls, iterable: Iterable[U] | AsyncIterable[U], *, name: str = "iterable") -> ReadableStream[U]:
        """Create a stream that pulls one item per read from a sync or async iterable."""
        return cls(_IterableSource(iterable), name=name)  # type: ignore[return-value]

    # ─────────────────────────────────────────────────────────────────────
    # Public surface
    # ─────────────────────────────────────────────────────────────────────

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def locked(self) -> bool:
        return self._reader is not None

    def get_reader(self) -> StreamReader[T]:
        """Acquire the exclusive reader. Raises StreamLockedError if already held."""
        if self._reader is not None:
            raise StreamLockedError(stream=self.name)
        self._reader = StreamReader(self)
        return self._reader

    async def read(self) -> ReadResult[T]:
        """Read one item without holding a reader."""
        self._check_unlocked()
        return await self._read()

    async def cancel(self, reason: object = None) -> None:
        """Cancel the stream, releasing its source with the given reason."""
        self._check_unlocked()
        await self._cancel(reason)

    async def iterate(self, *, prevent_cancel: bool = False) -> AsyncIterator[T]:
        """Iterate items until end-of-stream.

        Closing the generator before end-of-stream cancels the stream unless
        prevent_cancel is set.
        """
        reader = self.get_reader()
        try:
            while True:
                result = await reader.read()
                if result.done:
                    return
                yield result.value  # type: ignore[misc]
        finally:
            try:
                if not prevent_cancel and self._state is StreamState.READABLE:
                    await reader.cancel("iteration stopped")
            finally:
                reader.release_lock()

    def __aiter__(self) -> AsyncIterator[T]:
        return self.iterate()

    async def collect(self) -> list[T]:
        """Drain the stream into a list."""
        return [item async for item in self]

    def pipe_through(self, transform: TransformStream[T, U]) -> ReadableStream[U]:
        """Lock this stream to the transform and return its readable side."""
        return transform._attach(self)

    # ─────────────────────────────────────────────────────────────────────
    # Internals used by readers and controllers
    # ─────────────────────────────────────────────────────────────────────

    def _check_unlocked(self) -> None:
        if self._reader is not None:
            raise StreamLockedError(stream=self.name)

    async def _ensure_started(self) -> None:
        if self._started:
            return
        self._started = True
        if (start := getattr(self._source, "start", None)) is None:
            return
        try:
            await _maybe_await(start(self._controller))
        except Exception as exc:
            self._error(exc)

    async def _read(self) -> ReadResult[T]:
        await self._ensure_started()
        while True:
            if self._state is StreamState.ERRORED:
                raise self._stored_error  # type: ignore[misc]
            if self._queue:
                return ReadResult(done=False, value=self._queue.popleft())
            if self._state is StreamState.CLOSED:
                return ReadResult(done=True)
            if self._pull_task is None and getattr(self._source, "pull", None) is not None:
                self._pull_task = asyncio.create_task(self._run_pull())
            self._changed.clear()
            await self._changed.wait()

    async def _run_pull(self) -> None:
        try:
            await _maybe_await(self._source.pull(self._controller))  # type: ignore[union-attr]
        except Exception as exc:
            self._error(exc)
        finally:
            self._pull_task = None
            self._changed.set()

    async def _cancel(self, reason: object) -> None:
        if self._state is StreamState.ERRORED:
            raise self._stored_error  # type: ignore[misc]
        self._queue.clear()
        if self._state is StreamState.CLOSED:
            return
        self._state = StreamState.CLOSED
        self._changed.set()
        task = self._pull_task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            await asyncio.wait([task])
        _log.debug("stream cancelled", stream=self.name, reason=str(reason))
        if (cancel := getattr(self._source, "cancel", None)) is not None:
            await _maybe_await(cancel(reason))

    def _enqueue(self, chunk: T) -> None:
        if self._state is not StreamState.READABLE:
            raise StreamException.create(self.name, f"Cannot enqueue into a {self._state} stream",
                                         ErrorCode.STREAM_CLOSED)
        self._queue.append(chunk)
        self._changed.set()

    def _close(self) -> None:
        if self._state is not StreamState.READABLE:
            return
        self._state = StreamState.CLOSED
        self._changed.set()

    def _error(self, exc: BaseException) -> None:
        if self._state is not StreamState.READABLE:
            return
        self._state = StreamState.ERRORED
        self._stored_error = exc
        self._queue.clear()
        self._changed.set()
        _log.debug("stream errored", stream=self.name, error=repr(exc))


class StreamReader(Generic[T]):
    """Exclusive reader of a ReadableStream."""

    __slots__ = ("_stream",)

    def __init__(self, stream: ReadableStream[T]) -> None:
        self._stream: ReadableStream[T] | None = stream

    def _owned(self) -> ReadableStream[T]:
        if self._stream is None:
            raise StreamLockedError("Reader has been released")
        return self._stream

    @property
    def closed(self) -> bool:
        """Whether the underlying stream reached a terminal state."""
        return self._owned().state is not StreamState.READABLE

    async def read(self) -> ReadResult[T]:
        """Suspend until the next item or end-of-stream."""
        return await self._owned()._read()

    async def cancel(self, reason: object = None) -> None:
        """Release the stream early. Raises the stored error if the stream errored."""
        await self._owned()._cancel(reason)

    def release_lock(self) -> None:
        """Give up ownership; the stream may then be read or locked again."""
        if self._stream is not None:
            self._stream._reader = None
            self._stream = None


class _IterableSource(Generic[T]):
    """Underlying source adapting a sync or async iterable."""

    __slots__ = ("_iterator", "_is_async")

    def __init__(self, iterable: Iterable[T] | AsyncIterable[T]) -> None:
        self._is_async = isinstance(iterable, AsyncIterable)
        self._iterator = aiter(iterable) if self._is_async else iter(iterable)  # type: ignore[arg-type]

    async def pull(self, controller: StreamController[T]) -> None:
        try:
            if self._is_async:
                value = await anext(self._iterator)  # type: ignore[arg-type]
            else:
                value = next(self._iterator)  # type: ignore[call-overload]
        except (StopIteration, StopAsyncIteration):
            controller.close()
            return
        controller.enqueue(value)

    async def cancel(self, reason: object) -> None:
        if (aclose := getattr(self._iterator, "aclose", None)) is not None:
            await aclose()
        elif (close := getattr(self._iterator, "close", None)) is not None:
            close()
