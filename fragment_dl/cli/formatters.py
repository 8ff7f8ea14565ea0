"""
Rich renderings for errors, the effective configuration and the session summary.
"""

import asyncio
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from fragment_dl.exceptions import (
    ConfigurationError,
    ExhaustedRetriesError,
    ListingError,
    WriteError,
)
from fragment_dl.models.config import FetchConfig
from fragment_dl.models.stats import SessionStats
from fragment_dl.utils.formatting import format_duration, format_size, format_speed

DEFAULT_SUGGESTIONS = ("Run the command with -vv for detailed logs.",)

SUGGESTIONS: dict[type[BaseException], tuple[str, ...]] = {
    ListingError: (
        "Check that the playlist URL is correct and still live.",
        "Stream URLs often expire, so fetch a fresh one.",
        "Pass required headers with -H 'Name: value'.",
    ),
    ExhaustedRetriesError: (
        "A fragment kept failing. The host may be throttling you.",
        "Try a lower `--concurrency`, or raise `--retries` and `--backoff`.",
    ),
    WriteError: ("Check free disk space and permissions of the output directory.",),
    ConfigurationError: (
        "Fix the value in your config file or on the command line.",
        "Run `fragment-dl init --force` to recreate a default config.",
    ),
    asyncio.TimeoutError: (
        "A request timed out, which may indicate network throttling.",
        "Try a larger `--timeout` or fewer concurrent fetches.",
    ),
}


def _suggestions_for(error: BaseException) -> tuple[str, ...]:
    for error_type in type(error).__mro__:
        if error_type in SUGGESTIONS:
            return SUGGESTIONS[error_type]
    return DEFAULT_SUGGESTIONS


def format_error_with_suggestions(
    error: BaseException, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    context = dict(context or {})
    if (index := getattr(error, "index", None)) is not None:
        context.setdefault("fragment", index)

    error_text = Text()
    error_text.append(f"{type(error).__name__}: ", style="bold red")
    error_text.append(str(error))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(f"• {s}" for s in _suggestions_for(error))))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]Error[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(
    config_path: Path, config: FetchConfig, console: Console | None = None
):
    """Displays the effective configuration, hiding header values."""
    console = console or Console()
    lines = [
        f"{key} = {value}"
        for key, value in config.model_dump(exclude={"headers"}).items()
    ]
    if config.headers:
        lines.append(f"headers = {', '.join(config.headers)} (values hidden)")

    console.print(
        Panel(
            "\n".join(lines),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_summary_panel(
    stats: SessionStats, output_path: Path, console: Console | None = None
):
    """Displays the final summary of a completed download session."""
    console = console or Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row(
        "✓ Fragments:", f"[bold green]{stats.fragments_written}[/bold green]"
    )
    stats_table.add_row("Size:", format_size(stats.bytes_written))
    if stats.retries > 0:
        stats_table.add_row("Retries:", f"[yellow]{stats.retries}[/yellow]")

    stats_table.add_row("", "")  # Spacer
    stats_table.add_row("Duration:", format_duration(stats.duration_s))
    stats_table.add_row("Avg Speed:", format_speed(stats.average_speed_bps))
    if stats.peak_speed_bps > 0:
        stats_table.add_row("Peak Speed:", format_speed(stats.peak_speed_bps))
    stats_table.add_row("Output:", f"[dim]{output_path}[/dim]")

    console.print(
        Panel(
            stats_table,
            title="[bold green]✓ Download Complete[/bold green]",
            border_style="green",
            expand=False,
        )
    )
