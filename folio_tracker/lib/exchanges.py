"""Exchange suffix conventions used by the quote providers."""

from typing import NamedTuple


class Exchange(NamedTuple):
    """A regional listing venue identified by its ticker suffix."""

    suffix: str
    name: str
    currency: str


EXCHANGES: dict[str, Exchange] = {
    "PA": Exchange("PA", "Paris", "EUR"),
    "L": Exchange("L", "London", "GBP"),
    "DE": Exchange("DE", "Frankfurt", "EUR"),
    "AS": Exchange("AS", "Amsterdam", "EUR"),
    "MI": Exchange("MI", "Milan", "EUR"),
    "SW": Exchange("SW", "Swiss", "CHF"),
    "MC": Exchange("MC", "Madrid", "EUR"),
    "BR": Exchange("BR", "Brussels", "EUR"),
    "HE": Exchange("HE", "Helsinki", "EUR"),
    "ST": Exchange("ST", "Stockholm", "SEK"),
    "OL": Exchange("OL", "Oslo", "NOK"),
    "CO": Exchange("CO", "Copenhagen", "DKK"),
    "TO": Exchange("TO", "Toronto", "CAD"),
    "HK": Exchange("HK", "Hong Kong", "HKD"),
    "T": Exchange("T", "Tokyo", "JPY"),
}

US_EXCHANGE = Exchange("", "US", "USD")

# Suffixes tried, in order, when a bare symbol is not found
REGIONAL_SUFFIXES: tuple[str, ...] = (
    ".PA",
    ".L",
    ".DE",
    ".MC",
    ".SW",
    ".AS",
    ".MI",
    ".BR",
    ".HE",
    ".ST",
    ".OL",
    ".CO",
)


def split_symbol(symbol: str) -> tuple[str, str]:
    """Split ``MC.PA`` into ``("MC", "PA")``; symbols without a dot get an empty suffix."""
    symbol = symbol.strip().upper()
    if "." not in symbol:
        return symbol, ""
    base, _, suffix = symbol.rpartition(".")
    return base, suffix


def lookup_exchange(symbol: str) -> Exchange:
    """Exchange for a symbol's suffix; unknown or missing suffixes mean US."""
    _, suffix = split_symbol(symbol)
    return EXCHANGES.get(suffix, US_EXCHANGE)


def detect_stock_exchange(symbol: str) -> str:
    """
    Human readable exchange name for a ticker.

    Examples:
        >>> detect_stock_exchange("MC.PA")
        'Paris'
        >>> detect_stock_exchange("AAPL")
        'US'
    """
    return lookup_exchange(symbol).name


def detect_currency(symbol: str) -> str:
    """
    Trading currency implied by a ticker's exchange suffix.

    Examples:
        >>> detect_currency("NESN.SW")
        'CHF'
        >>> detect_currency("AAPL")
        'USD'
    """
    return lookup_exchange(symbol).currency
