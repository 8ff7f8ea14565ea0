"""
Reassembles fragments that arrive in any order into strictly ordered writes.

Each fragment index owns a one-shot completion signal. The writer for index ``i``
waits for the signal of ``i - 1``, writes its payload, then raises its own signal,
which releases the writer for ``i + 1``. Fetches therefore never wait on each
other; only the writes are serialized, and a fragment that arrives early holds its
payload only until its predecessor has been written.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

from fragment_dl.exceptions import WriteError
from fragment_dl.models.fragments import FragmentResult

log = logging.getLogger(__name__)

WrittenHook = Callable[[int, int], None]


class Sink(Protocol):
    async def write(self, data: bytes) -> None: ...


class OrderedAssembler:
    """Turns an unordered stream of fragment results into in-order sink writes."""

    def __init__(
        self,
        sink: Sink,
        total: int,
        on_written: WrittenHook | None = None,
    ):
        """
        Args:
            sink: Destination of the ordered writes.
            total: Number of fragments (N); indices are 0..N-1.
            on_written: Called as ``(index, size)`` after each successful write.
        """
        if total < 0:
            raise ValueError("Fragment count cannot be negative.")
        self.sink = sink
        self.total = total
        self.on_written = on_written
        self._signals = [asyncio.Event() for _ in range(total)]
        self._write_lock = asyncio.Lock()
        self._submitted: set[int] = set()
        self._writers: set[asyncio.Task] = set()
        self._failed = asyncio.Event()
        self._error: BaseException | None = None
        self.written = 0

    @property
    def is_complete(self) -> bool:
        return self.total == 0 or self._signals[-1].is_set()

    @property
    def error(self) -> BaseException | None:
        return self._error

    def submit(self, result: FragmentResult) -> None:
        """
        Schedules the ordered write of a fetched fragment.

        Raises:
            ValueError: If the index is out of range or was already submitted.
        """
        index = result.index
        if not 0 <= index < self.total:
            raise ValueError(f"Fragment index {index} is outside 0..{self.total - 1}.")
        if index in self._submitted:
            raise ValueError(f"Fragment #{index} was already submitted.")
        self._submitted.add(index)

        writer = asyncio.create_task(
            self._write_in_order(result), name=f"write-{index}"
        )
        self._writers.add(writer)
        writer.add_done_callback(self._writer_done)

    async def _write_in_order(self, result: FragmentResult) -> None:
        index = result.index
        if index > 0:
            await self._signals[index - 1].wait()

        async with self._write_lock:
            try:
                await self.sink.write(result.payload)
            except Exception as e:
                raise WriteError(index, e) from e

        size = result.size
        # The payload is not needed past this point.
        result.payload = b""
        self.written += 1
        self._signals[index].set()
        if self.on_written:
            try:
                self.on_written(index, size)
            except Exception as e:
                log.debug(f"Write hook failed for fragment #{index}: {e}")

    def _writer_done(self, writer: asyncio.Task) -> None:
        self._writers.discard(writer)
        if writer.cancelled():
            return
        error = writer.exception()
        if error is None:
            return
        if self._error is None:
            self._error = error
            log.debug(f"Ordered write failed: {error}")
        self._failed.set()

    async def wait_complete(self) -> None:
        """
        Waits until the last fragment has been written.

        Raises:
            WriteError: As soon as any write fails, instead of waiting on the
                now-blocked chain.
        """
        if self.total == 0:
            return

        done_waiter = asyncio.create_task(self._signals[-1].wait())
        fail_waiter = asyncio.create_task(self._failed.wait())
        try:
            await asyncio.wait(
                {done_waiter, fail_waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            done_waiter.cancel()
            fail_waiter.cancel()

        if self._error is not None:
            raise self._error

    async def abort(self) -> None:
        """Cancels every writer that has not finished yet."""
        writers = list(self._writers)
        for writer in writers:
            writer.cancel()
        if writers:
            await asyncio.gather(*writers, return_exceptions=True)
            log.debug(f"Aborted {len(writers)} pending write(s).")

