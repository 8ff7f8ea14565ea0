"""
Entry point for ``fragment-dl`` and ``python -m fragment_dl``.

Errors that escape the Typer app are rendered here so the user always gets a
panel with suggestions instead of a traceback.
"""

import logging
import os
import sys

import click
import typer
from rich.console import Console

from fragment_dl.cli.app import app
from fragment_dl.cli.formatters import format_error_with_suggestions
from fragment_dl.exceptions import FragmentDlError

log = logging.getLogger("fragment_dl")

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _force_utf8_console() -> None:
    # Windows consoles default to a legacy code page that cannot print the UI glyphs.
    for stream in (sys.stdout, sys.stderr):
        reconfigure = getattr(stream, "reconfigure", None)
        if reconfigure is not None:
            reconfigure(encoding="utf-8")


def main() -> None:
    if os.name == "nt":
        _force_utf8_console()

    console = Console(stderr=True)
    try:
        # Non-standalone so Ctrl-C and usage errors reach the handlers below.
        exit_code = app(standalone_mode=False)
    except typer.Abort as e:
        if isinstance(e.__cause__, KeyboardInterrupt):
            console.print("\n[yellow]Download interrupted by user.[/yellow]")
            sys.exit(EXIT_INTERRUPTED)
        console.print("Aborted.")
        sys.exit(EXIT_FAILURE)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except FragmentDlError as e:
        console.print(format_error_with_suggestions(e))
        sys.exit(EXIT_FAILURE)
    except Exception as e:
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        log.debug("Unhandled exception", exc_info=True)
        sys.exit(EXIT_FAILURE)
    sys.exit(exit_code or 0)


if __name__ == "__main__":
    main()
