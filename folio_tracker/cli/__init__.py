"""folio-tracker command line."""

import logging
import sys
import traceback
from types import TracebackType
from typing import Optional

import click

from folio_tracker import __version__
from folio_tracker.cli import history, portfolio, position, providers
from folio_tracker.cli.common import console
from folio_tracker.lib.errors import FolioError, format_error_message, get_error_color
from folio_tracker.lib.logging_config import setup_logging


@click.group()  # type: ignore[misc]
@click.option("--debug", is_flag=True, help="Verbose logging and tracebacks")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def main(ctx: click.Context, debug: bool) -> None:
    """Personal portfolio tracker - import holdings, fetch prices, track gains."""
    ctx.ensure_object(dict)
    ctx.obj["DEBUG"] = debug
    setup_logging(logging.DEBUG if debug else logging.WARNING)


def report_uncaught(
    exc_type: type[BaseException],
    exc_value: BaseException,
    exc_traceback: Optional[TracebackType],
) -> None:
    """
    ``sys.excepthook`` for the CLI: one coloured line instead of a traceback.

    Our own errors are expected failures; anything else also gets a hint, and
    with ``--debug`` on the command line the traceback follows.
    """
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    if isinstance(exc_value, Exception):
        color, message = get_error_color(exc_value), format_error_message(exc_value)
    else:
        color, message = "red", str(exc_value)
    console.print(f"\n[{color}]✗ Error: {message}[/{color}]\n")

    if not isinstance(exc_value, FolioError):
        console.print("[dim]Unexpected error occurred. Use --debug for full traceback.[/dim]")
    if "--debug" in sys.argv:
        console.print("[dim]Traceback:[/dim]")
        traceback.print_exception(exc_type, exc_value, exc_traceback)

    sys.exit(1)


sys.excepthook = report_uncaught


@main.command()  # type: ignore[misc]
def version() -> None:
    """Show version information."""
    click.echo(f"folio-tracker version {__version__}")


for group in (portfolio.portfolio, position.position, history.history, providers.providers):
    main.add_command(group)


if __name__ == "__main__":
    main()
