"""Shared fixtures and instrumented sources for stream tests."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

import pytest

from streamkit import ReadableStream, StreamController, clear_settings_cache, configure_logging


class RecordingSource:
    """Underlying source over a list that records every pull and cancel."""

    def __init__(
        self,
        items: Iterable[object],
        *,
        fail_read_at: int | None = None,
        fail_cancel: Exception | None = None,
        events: list[tuple[str, str]] | None = None,
        name: str = "src",
    ) -> None:
        self.items = list(items)
        self.pos = 0
        self.reads = 0
        self.cancels: list[object] = []
        self.fail_read_at = fail_read_at
        self.fail_cancel = fail_cancel
        self.events = events
        self.name = name

    async def pull(self, controller: StreamController[object]) -> None:
        self.reads += 1
        if self.fail_read_at is not None and self.pos == self.fail_read_at:
            raise RuntimeError("read failed")
        if self.pos >= len(self.items):
            controller.close()
            return
        controller.enqueue(self.items[self.pos])
        self.pos += 1

    async def cancel(self, reason: object) -> None:
        self.cancels.append(reason)
        if self.events is not None:
            self.events.append(("start", self.name))
            await asyncio.sleep(0.01)
            self.events.append(("end", self.name))
        if self.fail_cancel is not None:
            raise self.fail_cancel

    def stream(self) -> ReadableStream[object]:
        return ReadableStream(self, name=self.name)


class BlockingSource:
    """Source whose pull never completes until released; records cancels."""

    def __init__(self) -> None:
        self.entered = asyncio.Event()
        self.release = asyncio.Event()
        self.cancels: list[object] = []

    async def pull(self, controller: StreamController[object]) -> None:
        self.entered.set()
        await self.release.wait()
        controller.enqueue("late")

    async def cancel(self, reason: object) -> None:
        self.cancels.append(reason)


@pytest.fixture(autouse=True)
def clean_settings() -> object:
    """Reload settings from a clean environment and silence log output."""
    clear_settings_cache()
    configure_logging(format="none")
    yield
    clear_settings_cache()


@pytest.fixture
def recording() -> type[RecordingSource]:
    return RecordingSource


@pytest.fixture
def blocking() -> type[BlockingSource]:
    return BlockingSource
