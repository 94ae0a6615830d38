"""Position subcommands: add, buy, sell, remove, sales."""

from decimal import Decimal
from typing import Optional

import click
from rich.table import Table

from folio_tracker.cli.common import DECIMAL, console, fail, get_service, money, signed
from folio_tracker.lib.errors import FolioError, ValidationError
from folio_tracker.lib.validators import validate_positive_decimal, validate_symbol
from folio_tracker.services.ledger import LedgerResult, total_realized_pnl


@click.group()
def position() -> None:
    """Record trades against individual positions."""
    pass


def _trade_options(func):  # type: ignore[no-untyped-def]
    func = click.option("--date", default=None, help="Trade date (YYYY-MM-DD, default today)")(func)
    func = click.option(
        "--total", required=True, type=DECIMAL, help="Total amount paid or received"
    )(func)
    func = click.option("--shares", required=True, help="Number of shares")(func)
    return click.argument("symbol")(func)


def _report(result: LedgerResult, verb: str, symbol: str) -> None:
    if not result.ok or result.transaction is None:
        fail(ValidationError(result.error or "Ledger update failed"))
    tx = result.transaction
    held = result.ledger.position(symbol)
    console.print(
        f"[green]✓ {verb} {tx.shares.normalize():f} {symbol} @ {money(tx.price, 4)}[/green]"
    )
    if tx.realized_gain_loss is not None:
        console.print(f"  Realized: {signed(tx.realized_gain_loss)}")
    if held is not None:
        console.print(
            f"  Now holding {held.shares.normalize():f} @ avg {money(held.avg_price, 4)}"
        )


def _parse_trade(symbol: str, shares: str) -> tuple[str, Decimal]:
    return validate_symbol(symbol), validate_positive_decimal(shares, "quantity")


@position.command()
@_trade_options
@click.option("--name", default=None, help="Instrument name")
@click.option("--type", "asset_type", default=None, help="Asset type (Stock, ETF, ...)")
@click.option("--platform", default=None, help="Broker or platform")
def add(
    symbol: str,
    shares: str,
    total: Decimal,
    date: Optional[str],
    name: Optional[str],
    asset_type: Optional[str],
    platform: Optional[str],
) -> None:
    """Open a position in SYMBOL (or reopen a closed one)."""
    service = get_service()
    try:
        symbol, quantity = _parse_trade(symbol, shares)
        result = service.add_position(
            symbol, quantity, total, date, name=name, asset_type=asset_type, platform=platform
        )
    except FolioError as e:
        fail(e)
    _report(result, "Added", symbol)


@position.command()
@_trade_options
def buy(symbol: str, shares: str, total: Decimal, date: Optional[str]) -> None:
    """Buy more shares of an existing position."""
    service = get_service()
    try:
        symbol, quantity = _parse_trade(symbol, shares)
        result = service.buy(symbol, quantity, total, date)
    except FolioError as e:
        fail(e)
    _report(result, "Bought", symbol)


@position.command()
@_trade_options
def sell(symbol: str, shares: str, total: Decimal, date: Optional[str]) -> None:
    """Sell shares of a position at its average cost basis."""
    service = get_service()
    try:
        symbol, quantity = _parse_trade(symbol, shares)
        result = service.sell(symbol, quantity, total, date)
    except FolioError as e:
        fail(e)
    _report(result, "Sold", symbol)


@position.command()
@click.argument("symbol")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
def remove(symbol: str, yes: bool) -> None:
    """Delete a position and its whole transaction history."""
    service = get_service()
    symbol = symbol.strip().upper()
    if service.ledger.position(symbol) is None:
        fail(ValidationError(f"Position {symbol} not found"))

    count = len(service.ledger.transactions_for(symbol))
    if not yes and not click.confirm(
        f"Remove {symbol} and its {count} transaction(s)? This cannot be undone"
    ):
        console.print("[yellow]Cancelled[/yellow]")
        return

    service.remove_position(symbol)
    console.print(f"[green]✓ Removed {symbol}[/green]")


@position.command()
def sales() -> None:
    """Show every sale with its realized gain/loss, newest first."""
    service = get_service()
    records = service.sales_history()
    if not records:
        console.print("[yellow]No sales recorded.[/yellow]")
        return

    table = Table(title="Sales")
    table.add_column("Date")
    table.add_column("Symbol", style="cyan")
    table.add_column("Shares", justify="right", style="yellow")
    table.add_column("Price", justify="right")
    table.add_column("Cost Basis", justify="right")
    table.add_column("Realized", justify="right")
    for record in records:
        tx = record.transaction
        table.add_row(
            record.date,
            record.symbol,
            f"{tx.shares.normalize():f}",
            money(tx.price, 4),
            money(tx.cost_basis, 4),
            signed(tx.realized_gain_loss) if tx.realized_gain_loss is not None else "-",
        )
    console.print(table)
    console.print(f"Total realized: {signed(total_realized_pnl(records))}")
