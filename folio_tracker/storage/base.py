"""Persistence interface consumed by the services.

The pipelines never embed persistence logic; they call these methods on
whatever store the application entry point wires in.
"""

from decimal import Decimal
from typing import Mapping, Protocol, Sequence

from folio_tracker.models import AssetRecord, Position, PriceRecord, Snapshot, Transaction


class PortfolioStorage(Protocol):
    """Storage backend for assets, positions, transactions, snapshots and prices."""

    def save_assets(self, records: Sequence[AssetRecord]) -> None:
        """Insert or update asset registry entries by ticker."""
        ...

    def load_assets(self) -> list[AssetRecord]: ...

    def save_positions(self, positions: Sequence[Position]) -> None:
        """Replace the stored position list."""
        ...

    def load_positions(self) -> list[Position]: ...

    def save_transactions(self, by_symbol: Mapping[str, Sequence[Transaction]]) -> None:
        """Replace the stored transaction lists of the given symbols."""
        ...

    def load_transactions(self) -> dict[str, list[Transaction]]: ...

    def delete_transactions_for_symbol(self, symbol: str) -> None: ...

    def save_snapshot(self, snapshot: Snapshot) -> None:
        """Store a snapshot; a snapshot with the same timestamp is left untouched."""
        ...

    def load_snapshots(self) -> list[Snapshot]: ...

    def delete_snapshot(self, timestamp: str) -> bool: ...

    def clear_snapshots(self) -> int: ...

    def save_price_history(self, records: Sequence[PriceRecord]) -> None: ...

    def load_latest_prices(self) -> dict[str, Decimal]:
        """Most recent recorded price per ticker."""
        ...
