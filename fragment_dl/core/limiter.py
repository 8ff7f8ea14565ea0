"""
Bounded-parallelism runner for fragment fetches.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Iterator

from fragment_dl.models.fragments import FragmentResult, FragmentTask

log = logging.getLogger(__name__)

FetchFn = Callable[[FragmentTask], Awaitable[FragmentResult]]
ResultCallback = Callable[[FragmentResult], None]


class ConcurrencyLimiter:
    """
    Runs fetches over an ordered task list with at most ``limit`` in flight.

    A new task is admitted as soon as any running fetch finishes, whichever one it
    was, so results come back in arbitrary order. The first fatal error stops
    admission and cancels every fetch still in flight before it is re-raised.
    """

    def __init__(self, limit: int):
        if limit < 1:
            raise ValueError("Concurrency limit must be a positive integer.")
        self.limit = limit
        self.peak_in_flight = 0

    async def run(
        self,
        tasks: Iterable[FragmentTask],
        fetch: FetchFn,
        on_result: ResultCallback,
    ) -> int:
        """
        Fetches every task and hands each result to ``on_result`` as it arrives.

        Returns:
            The number of tasks fetched.
        """
        pending: Iterator[FragmentTask] = iter(tasks)
        in_flight: set[asyncio.Task] = set()
        completed = 0

        try:
            self._admit(pending, in_flight, fetch, self.limit)
            while in_flight:
                done, in_flight = await asyncio.wait(
                    in_flight, return_when=asyncio.FIRST_COMPLETED
                )
                errors = [t.exception() for t in done if t.exception() is not None]
                if errors:
                    raise min(errors, key=lambda e: getattr(e, "index", 0))

                for finished in sorted(done, key=lambda t: t.result().index):
                    on_result(finished.result())
                    completed += 1

                self._admit(pending, in_flight, fetch, len(done))
        finally:
            if in_flight:
                log.debug(f"Cancelling {len(in_flight)} in-flight fetch(es).")
                for task in in_flight:
                    task.cancel()
                await asyncio.gather(*in_flight, return_exceptions=True)

        return completed

    def _admit(
        self,
        pending: Iterator[FragmentTask],
        in_flight: set[asyncio.Task],
        fetch: FetchFn,
        slots: int,
    ) -> None:
        for _ in range(slots):
            task = next(pending, None)
            if task is None:
                return
            in_flight.add(
                asyncio.create_task(fetch(task), name=f"fragment-{task.index}")
            )
            self.peak_in_flight = max(self.peak_in_flight, len(in_flight))
