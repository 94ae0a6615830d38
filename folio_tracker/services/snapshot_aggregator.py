"""Point-in-time portfolio totals and snapshot series reconciliation."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from folio_tracker.models import Position, Snapshot


def build_snapshot(
    positions: Iterable[Position],
    prices: Mapping[str, Optional[Decimal]],
    timestamp: Optional[str] = None,
) -> Snapshot:
    """
    Derive portfolio totals from positions and current prices.

    Every position counts, active or not. A position without a (truthy)
    current price contributes its cost basis to the market value, so a
    portfolio with no fetched prices reports its invested amount.
    ``prices_available`` is the number of symbols in ``prices``, including
    symbols that are no longer held.

    Args:
        positions: Positions to total
        prices: Current price per symbol
        timestamp: ISO timestamp (defaults to now, UTC)

    Returns:
        New snapshot
    """
    positions = list(positions)
    invested = Decimal("0")
    market_value = Decimal("0")

    for position in positions:
        cost = position.shares * position.avg_price
        invested += cost
        price = prices.get(position.symbol)
        market_value += position.shares * price if price else cost

    return Snapshot(
        timestamp=timestamp or datetime.now(timezone.utc).isoformat(),
        total_invested=invested,
        total_market_value=market_value,
        position_count=len(positions),
        prices_available=len(prices),
    )


def merge_snapshots(existing: Iterable[Snapshot], incoming: Iterable[Snapshot]) -> list[Snapshot]:
    """
    Union of two snapshot series, deduplicated by timestamp.

    On a timestamp collision the first-seen snapshot wins, so ``existing``
    entries are never replaced by ``incoming`` ones. Merging the same input
    twice gives the same result.

    Returns:
        Snapshots sorted by timestamp, ascending
    """
    merged: dict[str, Snapshot] = {}
    for snapshot in list(existing) + list(incoming):
        merged.setdefault(snapshot.timestamp, snapshot)
    return sorted(merged.values(), key=lambda s: s.timestamp)
