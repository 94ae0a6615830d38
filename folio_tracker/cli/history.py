"""Snapshot history subcommands."""

import click
from rich.table import Table

from folio_tracker.cli.common import console, fail, get_service, money, signed
from folio_tracker.lib.errors import FolioError


@click.group()
def history() -> None:
    """Save and browse portfolio value snapshots."""
    pass


@history.command()
def save() -> None:
    """Save the current portfolio totals as a snapshot."""
    service = get_service()
    try:
        snapshot = service.save_snapshot()
    except FolioError as e:
        fail(e)
    console.print(f"[green]✓ Snapshot saved: {snapshot.timestamp}[/green]")
    console.print(
        f"  Invested {money(snapshot.total_invested)}, "
        f"market value {money(snapshot.total_market_value)} "
        f"({snapshot.prices_available} price(s) available)"
    )


@history.command(name="list")
def list_snapshots() -> None:
    """List saved snapshots, oldest first."""
    service = get_service()
    snapshots = service.store.snapshots
    if not snapshots:
        console.print("[yellow]No snapshots saved yet. Use 'history save'.[/yellow]")
        return

    table = Table(title="Snapshots")
    table.add_column("Timestamp", style="cyan")
    table.add_column("Invested", justify="right")
    table.add_column("Market Value", justify="right", style="magenta")
    table.add_column("Gain/Loss", justify="right")
    table.add_column("Positions", justify="right")
    table.add_column("Prices", justify="right")
    for s in snapshots:
        table.add_row(
            s.timestamp,
            money(s.total_invested),
            money(s.total_market_value),
            signed(s.gain_loss),
            str(s.position_count),
            str(s.prices_available),
        )
    console.print(table)


@history.command()
@click.argument("timestamp")
def delete(timestamp: str) -> None:
    """Delete the snapshot saved at TIMESTAMP."""
    service = get_service()
    if not service.delete_snapshot(timestamp):
        console.print(f"[red]✗ No snapshot at {timestamp}[/red]")
        raise SystemExit(1)
    console.print(f"[green]✓ Deleted snapshot {timestamp}[/green]")


@history.command()
@click.confirmation_option(prompt="Delete all snapshots?")
def clear() -> None:
    """Delete every snapshot."""
    count = get_service().clear_snapshots()
    console.print(f"[green]✓ Deleted {count} snapshot(s)[/green]")
