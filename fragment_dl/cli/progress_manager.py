"""
Rich progress display for a fragment download session.

Everything here is observational: a failing display call is logged and dropped so
it can never affect the output file.
"""

import asyncio
import functools
import logging

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
)

from fragment_dl.utils.formatting import format_size

log = logging.getLogger(__name__)


def _observational(method):
    """Swallows and logs display errors so progress can never break a download."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except Exception as e:
            log.debug(f"Progress update '{method.__name__}' failed: {e}")
            return None

    return wrapper


class ProgressReporter:
    """
    Tracks the remaining-fragment count and renders it as a Rich progress bar.

    With ``enabled=False`` nothing is rendered and updates only go to the debug log.
    """

    def __init__(self, console: Console | None = None, enabled: bool = True):
        self.console = console or Console()
        self.enabled = enabled
        self.total = 0
        self.remaining = 0
        self.retries = 0

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=30),
            MofNCompleteColumn(),
            "•",
            TextColumn("{task.fields[size]}"),
            "•",
            TimeRemainingColumn(),
            console=self.console,
            transient=False,
        )
        self._task_id: TaskID | None = None
        self._bytes_written = 0
        self._started = False

    @_observational
    def start(self, total: int) -> None:
        self.total = self.remaining = total
        if self.enabled and self._started:
            self._task_id = self.progress.add_task(
                "Fragments", total=total, size=format_size(0)
            )

    @_observational
    def fragment_fetched(self, index: int, size: int) -> None:
        log.debug(f"Fragment #{index} downloaded ({size} bytes)")

    @_observational
    def fragment_retrying(
        self, index: int, retry: int, delay: float, cause: BaseException
    ) -> None:
        self.retries += 1
        log.debug(f"Fragment #{index} retry {retry} in {delay:.2f}s after: {cause}")
        self._refresh_description()

    @_observational
    def fragment_written(self, index: int, size: int) -> None:
        self.remaining -= 1
        self._bytes_written += size
        log.debug(f"Fragment #{index} written - {self.remaining} remaining")
        if self._task_id is not None:
            self.progress.update(
                self._task_id, advance=1, size=format_size(self._bytes_written)
            )
            self._refresh_description()

    @_observational
    def finish(self, success: bool) -> None:
        if self._task_id is None:
            return
        style = "green" if success else "red"
        label = "Complete" if success else "Failed"
        self.progress.update(self._task_id, description=f"[{style}]{label}[/{style}]")

    def _refresh_description(self) -> None:
        if self._task_id is None:
            return
        description = f"Fragments ({self.remaining} left)"
        if self.retries:
            description += f" [yellow]{self.retries} retries[/yellow]"
        self.progress.update(self._task_id, description=description)

    async def __aenter__(self) -> "ProgressReporter":
        if self.enabled:
            try:
                self.progress.start()
                self._started = True
            except Exception as e:
                log.debug(f"Could not start progress display: {e}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._started:
            await asyncio.sleep(0.1)
            try:
                self.progress.stop()
            except Exception as e:
                log.debug(f"Could not stop progress display: {e}")
            self._started = False
