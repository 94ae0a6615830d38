"""Provider configuration status."""

import click
from rich.table import Table

from folio_tracker.cli.common import console
from folio_tracker.lib.config import ProviderKeys, calculate_rate_delay
from folio_tracker.services.providers import ProviderSet


@click.group()
def providers() -> None:
    """Inspect data provider configuration."""
    pass


@providers.command()
def status() -> None:
    """Show which providers have API keys and how fast refreshes will run."""
    keys = ProviderKeys.from_env()
    provider_set = ProviderSet.from_keys(keys)

    table = Table(title="Providers")
    table.add_column("Provider", style="cyan")
    table.add_column("Role")
    table.add_column("Env Var", style="dim")
    table.add_column("Min Interval", justify="right")
    table.add_column("Status")
    rows = [
        (provider_set.finnhub, "price tier 1, ISIN lookup", "FINNHUB_API_KEY"),
        (provider_set.fmp, "price tier 2, ISIN lookup", "FMP_API_KEY"),
        (provider_set.alpha_vantage, "price tier 3", "ALPHA_VANTAGE_API_KEY"),
        (provider_set.anthropic, "identifier resolution", "ANTHROPIC_API_KEY"),
    ]
    for adapter, role, env_var in rows:
        state = "[green]configured[/green]" if adapter.enabled else "[yellow]missing[/yellow]"
        table.add_row(adapter.name, role, env_var, f"{adapter.limiter.interval:g}s", state)
    console.print(table)

    delay, description = calculate_rate_delay(keys)
    console.print(f"Batch refresh: {description} ({delay:g}s between symbols)")
