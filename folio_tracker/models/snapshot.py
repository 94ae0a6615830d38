"""Snapshot model: an immutable, timestamped summary of portfolio value."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Snapshot:
    """
    Point-in-time portfolio totals.

    Snapshots are created by an explicit save and never edited; ``timestamp``
    is the deduplication key when merging series from different stores.
    """

    timestamp: str
    total_invested: Decimal
    total_market_value: Decimal
    position_count: int
    prices_available: int

    @property
    def gain_loss(self) -> Decimal:
        return self.total_market_value - self.total_invested
