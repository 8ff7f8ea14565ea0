"""
The main orchestrator for one download: lists fragments, drives the concurrent
fetches, and finalizes or discards the output artifact.
"""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Protocol

from fragment_dl.cli.progress_manager import ProgressReporter
from fragment_dl.exceptions import FragmentDlError, ListingError
from fragment_dl.media import RetryingFetcher
from fragment_dl.models.config import FetchConfig
from fragment_dl.models.fragments import FragmentList, FragmentResult, FragmentTask
from fragment_dl.models.stats import SessionStats
from fragment_dl.storage.artifact import OutputArtifact

from .assembler import OrderedAssembler
from .limiter import ConcurrencyLimiter

log = logging.getLogger(__name__)


class SessionState(Enum):
    """Lifecycle states of a download session."""

    IDLE = "idle"
    LISTING = "listing"
    DOWNLOADING = "downloading"
    COMPLETE = "complete"
    FAILED = "failed"


class FragmentListProvider(Protocol):
    """Anything that can tell the session which fragments make up the stream."""

    async def list_fragments(self) -> FragmentList: ...


class DownloadSession:
    """
    Runs one download from fragment listing to a finished output file.

    A session either completes with every fragment written in order, or fails with
    the first fatal error after cancelling outstanding work and removing the
    partial file. It runs at most once.
    """

    def __init__(
        self,
        config: FetchConfig,
        provider: FragmentListProvider,
        output_path: Path,
        reporter: ProgressReporter | None = None,
        fetcher: RetryingFetcher | None = None,
    ):
        self.config = config
        self.provider = provider
        self.output_path = Path(output_path)
        self.reporter = reporter or ProgressReporter(enabled=False)
        self.stats = SessionStats()
        self.state = SessionState.IDLE
        self.error: BaseException | None = None

        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or RetryingFetcher(
            config.retry_policy(),
            max_connections=config.concurrency,
            attempt_timeout=config.attempt_timeout,
            headers=config.headers,
        )
        if self.fetcher.on_retry is None:
            self.fetcher.on_retry = self._on_retry

    async def run(self) -> SessionStats:
        """
        Executes the session.

        Returns:
            The statistics of the completed session.

        Raises:
            ListingError: If the fragment list could not be obtained.
            ExhaustedRetriesError: If a fragment could not be downloaded.
            WriteError: If the output file rejected a write.
        """
        if self.state is not SessionState.IDLE:
            raise RuntimeError("A download session can only be run once.")

        try:
            tasks = await self._list_tasks()
            self.state = SessionState.DOWNLOADING
            await self._download(tasks)
        except BaseException as e:
            self.state = SessionState.FAILED
            self.error = e
            self.reporter.finish(success=False)
            raise
        finally:
            self.stats.finish()
            if self._owns_fetcher:
                await self.fetcher.close()

        self.state = SessionState.COMPLETE
        self.reporter.finish(success=True)
        log.info(
            f"[green]✓ Wrote {self.stats.fragments_written} fragment(s) to "
            f"'{self.output_path}'[/green]"
        )
        return self.stats

    async def _list_tasks(self) -> list[FragmentTask]:
        self.state = SessionState.LISTING
        try:
            fragment_list = await self.provider.list_fragments()
        except FragmentDlError:
            raise
        except Exception as e:
            raise ListingError(f"Could not obtain the fragment list: {e}") from e

        tasks = fragment_list.to_tasks()
        if [task.index for task in tasks] != list(range(len(tasks))):
            raise ListingError("Fragment indices are not contiguous from zero.")

        log.info(
            f"Found {len(tasks)} fragment(s) under [dim]{fragment_list.base_uri}[/dim]"
        )
        self.stats.fragments_total = len(tasks)
        self.reporter.start(len(tasks))
        return tasks

    async def _download(self, tasks: list[FragmentTask]) -> None:
        artifact = OutputArtifact(self.output_path)
        await artifact.open()
        assembler = OrderedAssembler(artifact, len(tasks), on_written=self._on_written)
        limiter = ConcurrencyLimiter(self.config.concurrency)

        def accept(result: FragmentResult) -> None:
            self.stats.record_fetched()
            self.reporter.fragment_fetched(result.index, result.size)
            assembler.submit(result)

        try:
            await self._run_overlapped(
                limiter.run(tasks, self.fetcher.fetch, accept),
                assembler.wait_complete(),
            )
        except BaseException:
            await assembler.abort()
            await artifact.discard()
            raise

        await artifact.finalize()
        log.debug(f"Peak concurrent fetches: {limiter.peak_in_flight}")

    async def _run_overlapped(self, fetching, assembling) -> None:
        """Runs fetching and ordered writing side by side; the first error wins."""
        fetch_task = asyncio.create_task(fetching, name="fetch-fragments")
        write_task = asyncio.create_task(assembling, name="assemble-fragments")
        try:
            done, _ = await asyncio.wait(
                {fetch_task, write_task}, return_when=asyncio.FIRST_EXCEPTION
            )
            errors = [
                t.exception()
                for t in (fetch_task, write_task)
                if t in done and t.exception() is not None
            ]
            if errors:
                raise errors[0]
        finally:
            for task in (fetch_task, write_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(fetch_task, write_task, return_exceptions=True)

    def _on_retry(
        self, index: int, retry: int, delay: float, cause: BaseException
    ) -> None:
        self.stats.record_retry()
        self.reporter.fragment_retrying(index, retry, delay, cause)

    def _on_written(self, index: int, size: int) -> None:
        self.stats.record_written(size)
        self.reporter.fragment_written(index, size)
