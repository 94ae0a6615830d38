"""Canonical price quote shapes produced by every quote provider."""

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class PriceQuote:
    """
    Result of one price lookup.

    ``tier`` records which fallback level answered (0 when none did). It is
    for diagnostics and display only.
    """

    price: Optional[Decimal]
    source: str
    tier: int
    success: bool
    error: Optional[str] = None
    alternative_symbol: Optional[str] = None
    original_symbol: Optional[str] = None

    @classmethod
    def hit(cls, price: Decimal, source: str, tier: int) -> "PriceQuote":
        return cls(price=price, source=source, tier=tier, success=True)

    @classmethod
    def miss(cls, source: str, error: str, tier: int = 0) -> "PriceQuote":
        return cls(price=None, source=source, tier=tier, success=False, error=error)

    def as_alternative(self, alternative_symbol: str, original_symbol: str) -> "PriceQuote":
        """Tag a successful quote as found under a different symbol."""
        return replace(
            self, alternative_symbol=alternative_symbol, original_symbol=original_symbol
        )


@dataclass(frozen=True)
class PriceMetadata:
    """Per-symbol outcome of a batch refresh."""

    timestamp: str
    source: str
    success: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class PriceRecord:
    """One row of price history."""

    ticker: str
    price: Decimal
    currency: str
    source: str
    fetched_at: str
