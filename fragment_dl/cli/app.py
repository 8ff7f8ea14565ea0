"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from fragment_dl import __version__
from fragment_dl.api.playlist import PlaylistProvider
from fragment_dl.core.session import DownloadSession
from fragment_dl.exceptions import FragmentDlError
from fragment_dl.storage.config_manager import ConfigManager
from fragment_dl.utils.path import resolve_output_path

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_summary_panel,
)
from .progress_manager import ProgressReporter

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("fragment_dl")

app = typer.Typer(
    name="fragment-dl",
    help=(
        "Download a fragmented media stream concurrently and reassemble it into a"
        " single file. Use 'fragment-dl <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "fragment-dl"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def parse_headers(raw_headers: list[str] | None) -> dict[str, str]:
    """Turns repeated ``Name: value`` options into a header mapping."""
    headers: dict[str, str] = {}
    for raw in raw_headers or []:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(
                f"Header '{raw}' must look like 'Name: value'.", param_hint="--header"
            )
        headers[name.strip()] = value.strip()
    return headers


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the effective configuration."
    ),
):
    """Fragmented stream downloader"""
    if version:
        console.print(f"[bold]fragment-dl[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("fragment_dl").setLevel(log_level)

    if show_config:
        try:
            config = ConfigManager(CONFIG_FILE).load_config()
        except FragmentDlError as e:
            console.print(format_error_with_suggestions(e))
            raise typer.Exit(code=1) from e
        print_config(CONFIG_FILE, config, console)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing config without asking."
    ),
):
    """Write a configuration file with the default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    try:
        ConfigManager(CONFIG_FILE).save_new_config()
    except FragmentDlError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e
    console.print(f"[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")


@app.command(name="download")
def download_command(
    playlist_url: str = typer.Argument(..., help="URL of the stream's media playlist."),
    output: Path | None = typer.Option(
        None,
        "-o",
        "--output",
        help=(
            "Output file, or a directory to place it in. Derived from the URL if"
            " omitted."
        ),
    ),
    concurrency: int | None = typer.Option(
        None,
        "-c",
        "--concurrency",
        help="Maximum number of fragments fetched at the same time (default 50).",
    ),
    retries: int | None = typer.Option(
        None,
        "-r",
        "--retries",
        help="Additional attempts per fragment after the first (default 5).",
    ),
    backoff: float | None = typer.Option(
        None,
        "--backoff",
        help="Base delay in seconds before the first retry; doubles each time.",
    ),
    jitter: bool | None = typer.Option(
        None,
        "--jitter/--no-jitter",
        help="Add random jitter to retry delays.",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        help="Deadline in seconds for a single fragment request.",
    ),
    header: list[str] | None = typer.Option(  # noqa: B008
        None,
        "-H",
        "--header",
        help="Extra request header 'Name: value'. Can be repeated.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Do not show the progress bar."
    ),
):
    """Download a fragmented stream into a single file."""
    cli_options = {
        key: value
        for key, value in {
            "concurrency": concurrency,
            "max_retries": retries,
            "base_backoff": backoff,
            "jitter": jitter,
            "attempt_timeout": timeout,
        }.items()
        if value is not None
    }
    headers = parse_headers(header)
    if headers:
        cli_options["headers"] = headers

    try:
        config = ConfigManager(CONFIG_FILE).load_config(cli_options)
    except FragmentDlError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

    output_path = resolve_output_path(playlist_url, output)
    provider = PlaylistProvider(playlist_url, headers=config.headers)

    async def _download_async():
        async with ProgressReporter(console=console, enabled=not quiet) as reporter:
            session = DownloadSession(config, provider, output_path, reporter=reporter)
            return await session.run()

    try:
        stats = asyncio.run(_download_async())
    except FragmentDlError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

    print_summary_panel(stats, output_path, console)
