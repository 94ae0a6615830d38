"""Helpers shared by the CLI command groups."""

import sys
from decimal import Decimal, InvalidOperation
from typing import Any, NoReturn, Optional

import click
from rich.console import Console

from folio_tracker.lib.errors import format_error_message, get_error_color
from folio_tracker.models import Resolution
from folio_tracker.services.identifier_resolver import Choice
from folio_tracker.services.portfolio_service import PortfolioService
from folio_tracker.storage import SqlStorage
from folio_tracker.storage.db import init_db

console = Console()


class DecimalType(click.ParamType):
    """Exact decimal option values (no float rounding)."""

    name = "decimal"

    def convert(
        self, value: Any, param: Optional[click.Parameter], ctx: Optional[click.Context]
    ) -> Decimal:
        if isinstance(value, Decimal):
            return value
        try:
            return Decimal(str(value).strip())
        except InvalidOperation:
            self.fail(f"{value!r} is not a valid number", param, ctx)


DECIMAL = DecimalType()


def get_service() -> PortfolioService:
    """Portfolio service over the configured SQLite database."""
    init_db()
    return PortfolioService(SqlStorage())


def fail(error: Exception) -> NoReturn:
    """Print an error the way the global handler does and exit with status 1."""
    color = get_error_color(error)
    console.print(f"[{color}]✗ Error: {format_error_message(error)}[/{color}]")
    sys.exit(1)


def money(value: Optional[Decimal], digits: int = 2) -> str:
    if value is None:
        return "-"
    return f"{value:,.{digits}f}"


def signed(value: Decimal) -> str:
    """Gain/loss coloured for rich output."""
    color = "green" if value >= 0 else "red"
    return f"[{color}]{value:+,.2f}[/{color}]"


def prompt_choice(resolution: Resolution) -> Choice:
    """Ask the user to pick a candidate for an ambiguous identifier."""
    console.print(f"\n[yellow]Uncertain match for {resolution.identifier}:[/yellow]")
    for i, candidate in enumerate(resolution.candidates, 1):
        note = " (best guess)" if i == 1 and candidate.confident else ""
        exchange = f" [{candidate.exchange}]" if candidate.exchange else ""
        console.print(f"  {i}. {candidate.ticker} — {candidate.name}{exchange}{note}")

    answer = click.prompt(
        f"Enter number (1-{len(resolution.candidates)}), a ticker, or '-' to skip",
        default="1",
    ).strip()
    if answer in ("", "-"):
        return None
    if answer.isdigit():
        return int(answer) - 1
    return answer
