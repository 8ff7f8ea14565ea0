"""
Tests for OrderedAssembler: ordered writes from unordered submissions.
"""

import asyncio
import random

import pytest

from fragment_dl.core.assembler import OrderedAssembler
from fragment_dl.exceptions import WriteError
from fragment_dl.models.fragments import FragmentResult


class RecordingSink:
    """Records writes and can be told to fail on a given payload."""

    def __init__(self, fail_on: bytes | None = None):
        self.writes: list[bytes] = []
        self.fail_on = fail_on
        self.concurrent = 0
        self.peak_concurrent = 0

    async def write(self, data: bytes) -> None:
        self.concurrent += 1
        self.peak_concurrent = max(self.peak_concurrent, self.concurrent)
        try:
            await asyncio.sleep(0)
            if data == self.fail_on:
                raise OSError(28, "No space left on device")
            self.writes.append(data)
        finally:
            self.concurrent -= 1


def result(index: int) -> FragmentResult:
    return FragmentResult(index, f"<{index}>".encode())


class TestOrderedWrites:
    @pytest.mark.asyncio
    async def test_reverse_submission_is_written_in_order(self):
        sink = RecordingSink()
        assembler = OrderedAssembler(sink, 5)

        for index in reversed(range(5)):
            assembler.submit(result(index))
        await assembler.wait_complete()

        assert sink.writes == [f"<{i}>".encode() for i in range(5)]
        assert assembler.is_complete
        assert assembler.written == 5

    @pytest.mark.asyncio
    async def test_random_arrival_order(self):
        sink = RecordingSink()
        assembler = OrderedAssembler(sink, 50)
        order = list(range(50))
        random.Random(3).shuffle(order)

        for index in order:
            assembler.submit(result(index))
            await asyncio.sleep(0)
        await assembler.wait_complete()

        assert b"".join(sink.writes) == b"".join(f"<{i}>".encode() for i in range(50))
        assert sink.peak_concurrent == 1

    @pytest.mark.asyncio
    async def test_single_fragment_writes_without_waiting(self):
        sink = RecordingSink()
        assembler = OrderedAssembler(sink, 1)

        assembler.submit(result(0))
        await asyncio.wait_for(assembler.wait_complete(), timeout=1)

        assert sink.writes == [b"<0>"]

    @pytest.mark.asyncio
    async def test_empty_stream_is_complete_immediately(self):
        assembler = OrderedAssembler(RecordingSink(), 0)
        assert assembler.is_complete
        await assembler.wait_complete()

    @pytest.mark.asyncio
    async def test_later_fragment_waits_for_predecessor(self):
        sink = RecordingSink()
        assembler = OrderedAssembler(sink, 3)

        assembler.submit(result(2))
        assembler.submit(result(1))
        await asyncio.sleep(0.01)
        assert sink.writes == []

        assembler.submit(result(0))
        await assembler.wait_complete()
        assert sink.writes == [b"<0>", b"<1>", b"<2>"]

    @pytest.mark.asyncio
    async def test_payload_released_after_write(self):
        assembler = OrderedAssembler(RecordingSink(), 1)
        fragment = result(0)

        assembler.submit(fragment)
        await assembler.wait_complete()

        assert fragment.payload == b""

    @pytest.mark.asyncio
    async def test_written_hook_reports_index_and_size(self):
        calls = []
        assembler = OrderedAssembler(
            RecordingSink(), 2, on_written=lambda i, size: calls.append((i, size))
        )
        assembler.submit(result(1))
        assembler.submit(result(0))
        await assembler.wait_complete()

        assert calls == [(0, 3), (1, 3)]

    @pytest.mark.asyncio
    async def test_failing_hook_does_not_affect_output(self):
        def broken_hook(index, size):
            raise RuntimeError("display gone")

        sink = RecordingSink()
        assembler = OrderedAssembler(sink, 3, on_written=broken_hook)
        for index in range(3):
            assembler.submit(result(index))
        await assembler.wait_complete()

        assert sink.writes == [b"<0>", b"<1>", b"<2>"]


class TestSubmissionValidation:
    @pytest.mark.asyncio
    async def test_rejects_out_of_range_index(self):
        assembler = OrderedAssembler(RecordingSink(), 2)
        with pytest.raises(ValueError):
            assembler.submit(result(2))
        with pytest.raises(ValueError):
            assembler.submit(result(-1))

    @pytest.mark.asyncio
    async def test_rejects_duplicate_index(self):
        sink = RecordingSink()
        assembler = OrderedAssembler(sink, 2)
        assembler.submit(result(1))
        with pytest.raises(ValueError):
            assembler.submit(result(1))
        await assembler.abort()
        assert sink.writes == []

    def test_rejects_negative_total(self):
        with pytest.raises(ValueError):
            OrderedAssembler(RecordingSink(), -1)


class TestWriteFailure:
    @pytest.mark.asyncio
    async def test_write_error_blocks_later_fragments(self):
        sink = RecordingSink(fail_on=b"<1>")
        assembler = OrderedAssembler(sink, 4)

        for index in (3, 2, 1, 0):
            assembler.submit(result(index))

        with pytest.raises(WriteError) as exc_info:
            await asyncio.wait_for(assembler.wait_complete(), timeout=1)

        assert exc_info.value.index == 1
        assert isinstance(exc_info.value.cause, OSError)
        assert sink.writes == [b"<0>"]
        assert not assembler.is_complete
        assert assembler.error is exc_info.value

        await assembler.abort()
        assert sink.writes == [b"<0>"]

    @pytest.mark.asyncio
    async def test_any_sink_failure_carries_the_fragment_index(self):
        class ClosedSink:
            async def write(self, data: bytes) -> None:
                raise ValueError("I/O operation on closed file.")

        assembler = OrderedAssembler(ClosedSink(), 2)
        assembler.submit(result(0))

        with pytest.raises(WriteError) as exc_info:
            await asyncio.wait_for(assembler.wait_complete(), timeout=1)

        assert exc_info.value.index == 0
        assert isinstance(exc_info.value.cause, ValueError)
        await assembler.abort()

    @pytest.mark.asyncio
    async def test_abort_cancels_waiting_writers(self):
        sink = RecordingSink()
        assembler = OrderedAssembler(sink, 3)
        assembler.submit(result(2))
        assembler.submit(result(1))

        await assembler.abort()
        assembler.submit(result(0))
        await asyncio.sleep(0.01)

        assert sink.writes == [b"<0>"]
        assert not assembler.is_complete
