"""Portfolio subcommands: import, list, refresh, price, search, summary."""

import asyncio
from typing import TextIO

import click
from rich.table import Table

from folio_tracker.cli.common import console, fail, get_service, money, prompt_choice, signed
from folio_tracker.lib.errors import FolioError
from folio_tracker.lib.validators import validate_symbol
from folio_tracker.services.ledger import partition
from folio_tracker.services.portfolio_metrics import (
    aggregate_by_type,
    calculate_position_gain_loss,
)


@click.group()
def portfolio() -> None:
    """Import, list and value the portfolio."""
    pass


@portfolio.command(name="import")
@click.argument("source", type=click.File("r", encoding="utf-8"))
@click.option("--replace", is_flag=True, help="Replace the whole portfolio instead of merging")
def import_positions(source: TextIO, replace: bool) -> None:
    """Import holdings from a tabular text FILE (use - for stdin)."""
    text = source.read()
    service = get_service()
    try:
        report = asyncio.run(service.import_text(text, replace=replace, decide=prompt_choice))
    except FolioError as e:
        fail(e)

    table = Table(title=f"Imported positions ({report.status.value})")
    table.add_column("Symbol", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Type")
    table.add_column("Shares", justify="right", style="yellow")
    table.add_column("Avg Price", justify="right")
    table.add_column("From", style="dim")
    for p in report.positions:
        table.add_row(
            p.symbol,
            p.name,
            p.asset_type,
            f"{p.shares.normalize():f}",
            money(p.avg_price) if p.avg_price > 0 else "market",
            p.resolved_from or "",
        )
    console.print(table)

    for warning in report.warnings:
        console.print(f"[yellow]⚠ {warning}[/yellow]")
    for error in report.errors:
        console.print(f"[red]✗ {error}[/red]")

    mode = "Replaced portfolio with" if replace else "Imported"
    console.print(f"[green]✓ {mode} {len(report.positions)} position(s)[/green]")


@portfolio.command(name="list")
@click.option("--all", "show_all", is_flag=True, help="Include closed positions")
def list_positions(show_all: bool) -> None:
    """List positions with market value and gain/loss."""
    service = get_service()
    active, inactive = partition(service.ledger.positions)
    positions = active + inactive if show_all else active

    if not positions:
        console.print("[yellow]No positions. Import some with 'portfolio import'.[/yellow]")
        return

    table = Table(title="Positions")
    table.add_column("Symbol", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Type")
    table.add_column("Platform", style="dim")
    table.add_column("Shares", justify="right", style="yellow")
    table.add_column("Avg Price", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Value", justify="right", style="magenta")
    table.add_column("Gain/Loss", justify="right")

    for p in positions:
        price = service.store.prices.get(p.symbol)
        result = calculate_position_gain_loss(p, price)
        gain_loss = "-"
        if result.has_price:
            gain_loss = f"{signed(result.gain_loss)} ({result.gain_loss_pct:+.1f}%)"
        table.add_row(
            p.symbol if p.is_active else f"[dim]{p.symbol} (closed)[/dim]",
            p.name,
            p.asset_type,
            p.platform,
            f"{p.shares.normalize():f}",
            money(p.avg_price),
            money(price),
            money(result.market_value),
            gain_loss,
        )
    console.print(table)


@portfolio.command()
def refresh() -> None:
    """Fetch current prices for every position."""
    service = get_service()
    console.print(f"[dim]{service.fetcher.rate_description}[/dim]")
    try:
        result = asyncio.run(service.refresh_prices())
    except FolioError as e:
        fail(e)

    table = Table(title="Price refresh")
    table.add_column("Symbol", style="cyan")
    table.add_column("Price", justify="right", style="magenta")
    table.add_column("Source")
    for symbol, meta in result.metadata.items():
        if meta.success:
            table.add_row(symbol, money(result.prices.get(symbol)), meta.source)
        else:
            table.add_row(symbol, "-", f"[red]{meta.error}[/red]")
    console.print(table)
    console.print(
        f"[green]✓ {len(result.succeeded)} updated[/green], "
        f"[red]{len(result.failed)} failed[/red]"
    )


@portfolio.command()
@click.argument("symbol")
def price(symbol: str) -> None:
    """Fetch the current price of SYMBOL."""
    service = get_service()
    try:
        quote = asyncio.run(service.refresh_single_price(validate_symbol(symbol)))
    except FolioError as e:
        fail(e)

    if not quote.success:
        console.print(f"[red]✗ {symbol.upper()}: {quote.error} ({quote.source})[/red]")
        raise SystemExit(1)
    via = f" as {quote.alternative_symbol}" if quote.alternative_symbol else ""
    console.print(
        f"[green]{symbol.upper()}: {money(quote.price, 4)}[/green] from {quote.source}{via}"
    )


@portfolio.command()
@click.argument("query")
def search(query: str) -> None:
    """Search instruments by ticker or company name."""
    service = get_service()
    try:
        results = asyncio.run(service.search_assets(query))
    except FolioError as e:
        fail(e)

    if not results:
        console.print(f"[yellow]No instruments found for '{query}'[/yellow]")
        return

    table = Table(title=f"Search: {query}")
    table.add_column("Symbol", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Type")
    for result in results:
        table.add_row(result.symbol, result.name, result.asset_type)
    console.print(table)


@portfolio.command()
def summary() -> None:
    """Show portfolio totals, allocation and realized gains."""
    service = get_service()
    positions = service.ledger.positions
    if not positions:
        console.print("[yellow]No positions. Import some with 'portfolio import'.[/yellow]")
        return

    totals = service.totals()
    advisory = service.advisory_summary()
    base = service.converter.base_currency

    console.print("\n[bold]Summary:[/bold]")
    console.print(f"├─ Invested: {money(totals.total_invested)}")
    console.print(f"├─ Market Value: {money(totals.total_market_value)}")
    console.print(f"├─ Market Value ({base}): {money(service.base_currency_value())}")
    console.print(
        f"├─ Gain/Loss: {signed(totals.gain_loss)} ({totals.gain_loss_pct:+.2f}%)"
    )
    console.print(f"├─ Priced: {totals.positions_with_prices}/{len(positions)} positions")
    console.print(
        f"└─ Realized: {signed(advisory.realized_pnl)} over {advisory.sales_count} sale(s)"
    )

    allocations, _ = aggregate_by_type(positions, service.store.prices)
    table = Table(title="Allocation by type")
    table.add_column("Type", style="cyan")
    table.add_column("Value", justify="right", style="magenta")
    table.add_column("Weight", justify="right")
    for allocation in allocations:
        table.add_row(allocation.asset_type, money(allocation.value), f"{allocation.weight:.1f}%")
    console.print(table)

    table = Table(title="Allocation by sector")
    table.add_column("Sector", style="cyan")
    table.add_column("Value", justify="right", style="magenta")
    table.add_column("Weight", justify="right")
    for sector in service.sector_allocation():
        table.add_row(sector.sector, money(sector.value), f"{sector.weight:.1f}%")
    console.print(table)
