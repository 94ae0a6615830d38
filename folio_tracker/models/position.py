"""
Position model representing one symbol held (or previously held) in the portfolio.

A position with zero shares is inactive: it stays in the ledger so it can be
reactivated and keeps its transaction history until explicitly removed.
"""

import enum
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Optional


class AssetType(str, enum.Enum):
    """Canonical asset types."""

    STOCK = "Stock"
    ETF = "ETF"
    CRYPTO = "Crypto"
    REIT = "REIT"
    BOND = "Bond"
    COMMODITY = "Commodity"
    CASH = "Cash"
    OTHER = "Other"


DEFAULT_PLATFORM = "Unknown"


@dataclass(frozen=True)
class Position:
    """
    A holding of one symbol.

    Attributes:
        symbol: Canonical ticker, uppercase, unique within the portfolio
        name: Display name (defaults to the symbol)
        platform: Broker or account the shares are held at
        asset_type: Canonical type, or a provider label with no known mapping
        shares: Units held; zero marks the position inactive
        avg_price: Weighted-average cost per unit of the currently held lot
        needs_current_price: Imported without a cost basis; filled from a live quote
        resolved_from: ISIN or code the symbol was resolved from, if any
    """

    symbol: str
    shares: Decimal
    avg_price: Decimal
    name: str = ""
    platform: str = DEFAULT_PLATFORM
    asset_type: str = AssetType.STOCK.value
    needs_current_price: bool = False
    resolved_from: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "symbol", self.symbol.strip().upper())
        if not self.name:
            object.__setattr__(self, "name", self.symbol)

    @property
    def is_active(self) -> bool:
        """True while shares are held."""
        return self.shares > 0

    @property
    def cost_basis(self) -> Decimal:
        """Total invested in the currently held lot."""
        return self.shares * self.avg_price

    def with_changes(self, **changes: object) -> "Position":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)  # type: ignore[arg-type]
