"""Tests for early_zip_streams.

Covers round-robin ordering, early termination on the shortest source,
cancellation batches, failure propagation and drain idempotence.
"""

from __future__ import annotations

import asyncio
from contextlib import aclosing

import pytest

from streamkit import ReadableStream, ReadResult, StreamLockedError, StreamState, early_zip_streams


def _streams(*lists: list[str]) -> list[ReadableStream[str]]:
    return [ReadableStream.from_iterable(items) for items in lists]


# ─────────────────────────────────────────────────────────────────────────────
# Ordering
# ─────────────────────────────────────────────────────────────────────────────


class TestEarlyZipOrdering:
    """Merged output order for equal and uneven sources."""

    @pytest.mark.asyncio
    async def test_same_length(self) -> None:
        zipped = early_zip_streams(*_streams(["1", "2", "3"], ["a", "b", "c"]))
        assert await zipped.collect() == ["1", "a", "2", "b", "3", "c"]

    @pytest.mark.asyncio
    async def test_first_shorter(self) -> None:
        zipped = early_zip_streams(*_streams(["1", "2"], ["a", "b", "c", "d"]))
        assert await zipped.collect() == ["1", "a", "2", "b"]

    @pytest.mark.asyncio
    async def test_second_shorter_keeps_chunk_read_in_same_round(self) -> None:
        zipped = early_zip_streams(*_streams(["1", "2", "3", "4"], ["a", "b"]))
        assert await zipped.collect() == ["1", "a", "2", "b", "3"]

    @pytest.mark.asyncio
    async def test_three_uneven_streams(self) -> None:
        zipped = early_zip_streams(*_streams(["1"], ["a", "b"], ["A", "B", "C"]))
        assert await zipped.collect() == ["1", "a", "A"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("n", [1, 2, 4])
    @pytest.mark.parametrize("k", [0, 1, 3])
    async def test_equal_lengths_yield_k_times_n(self, n: int, k: int) -> None:
        sources = [[f"{s}-{r}" for r in range(k)] for s in range(n)]
        zipped = early_zip_streams(*_streams(*sources))
        expected = [sources[s][r] for r in range(k) for s in range(n)]
        assert await zipped.collect() == expected

    @pytest.mark.asyncio
    async def test_single_source_passes_through(self, recording) -> None:
        src = recording(["x", "y"])
        zipped = early_zip_streams(src.stream())
        assert await zipped.collect() == ["x", "y"]
        assert src.cancels == []  # already closed when its own end is seen

    @pytest.mark.asyncio
    async def test_accepts_plain_and_async_iterables(self) -> None:
        async def letters():
            for ch in "abc":
                yield ch

        zipped = early_zip_streams(["1", "2"], letters())
        assert await zipped.collect() == ["1", "a", "2", "b"]

    @pytest.mark.asyncio
    async def test_item_visible_before_round_completes(self, recording, blocking) -> None:
        fast, slow = recording(["1", "2"]), blocking()
        reader = early_zip_streams(fast.stream(), ReadableStream(slow)).get_reader()

        assert await reader.read() == ReadResult(done=False, value="1")
        await asyncio.wait_for(slow.entered.wait(), timeout=1)
        assert fast.reads == 1  # round 2 not started while index 1 is pending

        await reader.cancel("consumer gone")


# ─────────────────────────────────────────────────────────────────────────────
# Early Termination
# ─────────────────────────────────────────────────────────────────────────────


class TestEarlyZipTermination:
    """Source cancellation when one source is exhausted."""

    @pytest.mark.asyncio
    async def test_longer_source_cancelled_with_index_reason(self, recording) -> None:
        short, long = recording(["1", "2"]), recording(["a", "b", "c", "d"])
        await early_zip_streams(short.stream(), long.stream()).collect()

        assert long.cancels == ["Stream at index 0 ended"]
        assert long.pos == 2  # third item never read
        assert short.cancels == []

    @pytest.mark.asyncio
    async def test_earlier_source_cancelled_after_its_read(self, recording) -> None:
        long, short = recording(["1", "2", "3", "4"]), recording(["a", "b"])
        await early_zip_streams(long.stream(), short.stream()).collect()

        assert long.cancels == ["Stream at index 1 ended"]
        assert long.pos == 3

    @pytest.mark.asyncio
    async def test_all_siblings_cancelled(self, recording) -> None:
        a, b, c = recording(["1"]), recording(["a", "b"]), recording(["A", "B", "C"])
        await early_zip_streams(a.stream(), b.stream(), c.stream()).collect()

        assert b.cancels == ["Stream at index 0 ended"]
        assert c.cancels == ["Stream at index 0 ended"]

    @pytest.mark.asyncio
    async def test_no_reads_after_exhaustion(self, recording) -> None:
        a, b = recording(["1"]), recording(["a", "b", "c"])
        reader = early_zip_streams(a.stream(), b.stream()).get_reader()
        results = [await reader.read() for _ in range(5)]

        assert [r.value for r in results if not r.done] == ["1", "a"]
        assert all(r.done for r in results[2:])
        assert b.reads == 1

    @pytest.mark.asyncio
    async def test_sources_stay_locked(self) -> None:
        src = ReadableStream.from_iterable([1, 2])
        early_zip_streams(src)
        with pytest.raises(StreamLockedError):
            src.get_reader()

    def test_requires_at_least_one_stream(self) -> None:
        with pytest.raises(ValueError, match="at least one stream"):
            early_zip_streams()


# ─────────────────────────────────────────────────────────────────────────────
# Consumer Cancellation
# ─────────────────────────────────────────────────────────────────────────────


class TestEarlyZipCancellation:
    """Consumer-initiated cancellation of the merged output."""

    @pytest.mark.asyncio
    async def test_cancel_mid_stream_cancels_each_source_once(self, recording) -> None:
        a, b = recording(["1", "2", "3"]), recording(["a", "b", "c"])
        reader = early_zip_streams(a.stream(), b.stream()).get_reader()
        await reader.read()
        await reader.read()

        await reader.cancel("stop")
        await reader.cancel("again")

        assert a.cancels == ["stop"]
        assert b.cancels == ["stop"]
        assert (await reader.read()).done

    @pytest.mark.asyncio
    async def test_cancel_mid_round_releases_pending_source(self, recording, blocking) -> None:
        fast, slow = recording(["1", "2"]), blocking()
        reader = early_zip_streams(fast.stream(), ReadableStream(slow)).get_reader()
        await reader.read()
        await asyncio.wait_for(slow.entered.wait(), timeout=1)

        pending = asyncio.create_task(reader.read())
        await asyncio.sleep(0)
        await reader.cancel("consumer gone")

        assert (await pending).done
        assert fast.cancels == ["consumer gone"]
        assert slow.cancels == ["consumer gone"]

    @pytest.mark.asyncio
    async def test_cancellations_run_concurrently(self, recording) -> None:
        events: list[tuple[str, str]] = []
        a = recording(["1", "2"], events=events, name="a")
        b = recording(["a", "b"], events=events, name="b")
        zipped = early_zip_streams(a.stream(), b.stream())

        await zipped.cancel("stop")

        assert [kind for kind, _ in events] == ["start", "start", "end", "end"]

    @pytest.mark.asyncio
    async def test_cancel_during_exhaustion_batch_waits_for_it(self, recording) -> None:
        events: list[tuple[str, str]] = []
        short, slow = recording(["1"]), recording(["a", "b", "c"], events=events, name="b")
        reader = early_zip_streams(short.stream(), slow.stream()).get_reader()
        assert (await reader.read()).value == "1"
        assert (await reader.read()).value == "a"

        pending = asyncio.create_task(reader.read())
        await asyncio.sleep(0.003)  # exhaustion batch is inside slow's cancel hook
        await reader.cancel("consumer gone")

        assert events == [("start", "b"), ("end", "b")]
        assert slow.cancels == ["Stream at index 0 ended"]
        assert (await pending).done

    @pytest.mark.asyncio
    async def test_cancel_during_exhaustion_batch_raises_its_failure(self, recording) -> None:
        events: list[tuple[str, str]] = []
        short = recording(["1"])
        slow = recording(["a", "b"], events=events, name="b", fail_cancel=RuntimeError("boom"))
        reader = early_zip_streams(short.stream(), slow.stream()).get_reader()
        await reader.read()
        await reader.read()

        pending = asyncio.create_task(reader.read())
        await asyncio.sleep(0.003)
        with pytest.raises(RuntimeError, match="boom"):
            await reader.cancel("consumer gone")

        assert events == [("start", "b"), ("end", "b")]
        assert (await pending).done

    @pytest.mark.asyncio
    async def test_closing_iteration_early_cancels_sources(self, recording) -> None:
        a, b = recording(["1", "2"]), recording(["a", "b"])
        async with aclosing(early_zip_streams(a.stream(), b.stream()).iterate()) as items:
            async for item in items:
                assert item == "1"
                break

        assert a.cancels == ["iteration stopped"]
        assert b.cancels == ["iteration stopped"]


# ─────────────────────────────────────────────────────────────────────────────
# Failures & Idempotence
# ─────────────────────────────────────────────────────────────────────────────


class TestEarlyZipFailures:
    """Upstream failures propagate; terminal outputs stay terminal."""

    @pytest.mark.asyncio
    async def test_read_failure_errors_output_and_releases_others(self, recording) -> None:
        bad, other = recording(["1", "2"], fail_read_at=1), recording(["a", "b", "c"])
        reader = early_zip_streams(bad.stream(), other.stream()).get_reader()
        assert (await reader.read()).value == "1"
        assert (await reader.read()).value == "a"

        with pytest.raises(RuntimeError, match="read failed"):
            await reader.read()

        assert len(other.cancels) == 1
        assert isinstance(other.cancels[0], RuntimeError)

    @pytest.mark.asyncio
    async def test_cancel_failure_on_exhaustion_propagates(self, recording) -> None:
        short, bad = recording(["1"]), recording(["a", "b"], fail_cancel=RuntimeError("boom"))
        zipped = early_zip_streams(short.stream(), bad.stream())

        with pytest.raises(RuntimeError, match="boom"):
            await zipped.collect()
        assert zipped.state is StreamState.ERRORED

        with pytest.raises(RuntimeError, match="boom"):
            await zipped.collect()
        assert bad.cancels == ["Stream at index 0 ended"]

    @pytest.mark.asyncio
    async def test_consumer_cancel_waits_for_all_then_raises(self, recording) -> None:
        bad = recording(["1"], fail_cancel=RuntimeError("boom"))
        good = recording(["a"])
        zipped = early_zip_streams(bad.stream(), good.stream())

        with pytest.raises(RuntimeError, match="boom"):
            await zipped.cancel("stop")
        assert good.cancels == ["stop"]

    @pytest.mark.asyncio
    async def test_second_drain_yields_nothing(self, recording) -> None:
        a, b = recording(["1", "2"]), recording(["a", "b", "c"])
        zipped = early_zip_streams(a.stream(), b.stream())

        assert await zipped.collect() == ["1", "a", "2", "b"]
        assert await zipped.collect() == []
        assert b.cancels == ["Stream at index 0 ended"]
