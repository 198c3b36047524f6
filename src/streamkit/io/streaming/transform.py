"""Single-input/single-output transform stages for ReadableStream.

A TransformStream reads one upstream chunk per pull and hands it to its
``transform(chunk, controller)`` step. The step may enqueue any number of
chunks, terminate the output early, or raise to error it. Either way the
upstream source is cancelled so it is never left locked and half-read.

Example:
    >>> upper = TransformStream(lambda chunk, ctl: ctl.enqueue(chunk.upper()))
    >>> await ReadableStream.from_iterable(["a", "b"]).pipe_through(upper).collect()
    ['A', 'B']
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import Callable, Generic, TypeVar

from streamkit.foundation.errors import StreamLockedError
from streamkit.runtime.observability.logging import get_logger

from .stream import ReadableStream, StreamController, StreamReader, _maybe_await

In = TypeVar("In")
Out = TypeVar("Out")

TransformFn = Callable[[In, "TransformController[Out]"], Awaitable[None] | None]
FlushFn = Callable[["TransformController[Out]"], Awaitable[None] | None]

_log = get_logger("streamkit.transform")


class TransformController(Generic[Out]):
    """Handle passed to transform and flush steps."""

    __slots__ = ("_owner",)

    def __init__(self, owner: TransformStream[object, Out]) -> None:
        self._owner = owner

    def enqueue(self, chunk: Out) -> None:
        """Forward a chunk to the readable side."""
        self._owner._output_controller().enqueue(chunk)

    def terminate(self) -> None:
        """Release the upstream source, then close the readable side cleanly."""
        self._owner._output_controller()
        self._owner._stop("transform terminated", close=True)

    def error(self, exc: BaseException) -> None:
        """Error the readable side and release the upstream source with exc."""
        self._owner._output_controller().error(exc)
        self._owner._stop(exc)


class TransformStream(Generic[In, Out]):
    """Transform stage applied with ``ReadableStream.pipe_through``.

    Pass ``transform``/``flush`` callables, or subclass and override the
    ``transform``/``flush`` methods. The default transform forwards chunks
    unchanged. A TransformStream can be piped once.
    """

    def __init__(
        self,
        transform: TransformFn[In, Out] | None = None,
        flush: FlushFn[Out] | None = None,
        *,
        name: str = "transform",
    ) -> None:
        self.name = name
        self._transform_fn = transform
        self._flush_fn = flush
        self._controller: TransformController[Out] = TransformController(self)
        self._upstream: StreamReader[In] | None = None
        self._readable: ReadableStream[Out] | None = None
        self._stop_reason: object = None
        self._stopped = False
        self._close_pending = False
        self._releasing: asyncio.Task[None] | None = None

    @property
    def readable(self) -> ReadableStream[Out] | None:
        """Readable side, available once piped."""
        return self._readable

    async def transform(self, chunk: In, controller: TransformController[Out]) -> None:
        if self._transform_fn is None:
            controller.enqueue(chunk)  # type: ignore[arg-type]
            return
        await _maybe_await(self._transform_fn(chunk, controller))

    async def flush(self, controller: TransformController[Out]) -> None:
        if self._flush_fn is not None:
            await _maybe_await(self._flush_fn(controller))

    def _attach(self, source: ReadableStream[In]) -> ReadableStream[Out]:
        if self._readable is not None:
            raise StreamLockedError("TransformStream is already piped", stream=self.name)
        self._upstream = source.get_reader()
        self._readable = ReadableStream(_TransformSource(self), name=self.name)
        return self._readable

    def _output_controller(self) -> StreamController[Out]:
        if self._readable is None:
            raise StreamLockedError("TransformStream has not been piped", stream=self.name)
        return self._readable._controller

    def _stop(self, reason: object, *, close: bool = False) -> None:
        if not self._stopped:
            self._stopped, self._stop_reason, self._close_pending = True, reason, close


class _TransformSource(Generic[In, Out]):
    """Underlying source driving a TransformStream's readable side."""

    __slots__ = ("_ts",)

    def __init__(self, ts: TransformStream[In, Out]) -> None:
        self._ts = ts

    async def pull(self, controller: StreamController[Out]) -> None:
        ts, upstream = self._ts, self._ts._upstream
        if upstream is None:
            raise StreamLockedError("TransformStream has no upstream reader", stream=ts.name)
        result = await upstream.read()
        if result.done:
            await ts.flush(ts._controller)
            controller.close()
            ts._upstream = None
            upstream.release_lock()
            return
        try:
            await ts.transform(result.value, ts._controller)  # type: ignore[arg-type]
        except Exception as exc:
            ts._stop(exc)
            await self._release_upstream()
            raise
        await self._release_upstream()
        if ts._close_pending:
            controller.close()

    async def cancel(self, reason: object) -> None:
        self._ts._stop(reason)
        await self._release_upstream()

    async def _release_upstream(self) -> None:
        # Runs as its own task: a cancelled pull leaves it running and a later
        # consumer cancel awaits the same task.
        ts = self._ts
        if ts._releasing is None:
            if not ts._stopped or ts._upstream is None:
                return
            upstream, ts._upstream = ts._upstream, None
            ts._releasing = asyncio.create_task(self._cancel_upstream(upstream))
        await asyncio.shield(ts._releasing)

    async def _cancel_upstream(self, upstream: StreamReader[In]) -> None:
        ts = self._ts
        try:
            await upstream.cancel(ts._stop_reason)
        except Exception as exc:
            if not isinstance(ts._stop_reason, BaseException):
                raise
            # stored transform error takes precedence
            _log.warning("upstream cancel failed", stream=ts.name, error=repr(exc))
        finally:
            upstream.release_lock()
