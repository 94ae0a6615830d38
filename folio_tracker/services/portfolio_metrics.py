"""Portfolio valuation metrics: totals, per-position gain/loss, weights, allocations.

Positions without a current price are valued at cost basis throughout.
Percentages are returned on a 0-100 scale.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable, Mapping, Optional

from folio_tracker.models import Position

ZERO = Decimal("0")
HUNDRED = Decimal("100")

Prices = Mapping[str, Optional[Decimal]]


@dataclass
class PortfolioTotals:
    """Aggregate valuation of a portfolio.

    Attributes:
        total_invested: Sum of shares x average price
        total_market_value: Sum of market values (cost basis when unpriced)
        positions_with_prices: Positions that had a current price
        gain_loss: Market value minus invested
        gain_loss_pct: Gain/loss relative to invested, 0 when nothing invested
    """

    total_invested: Decimal
    total_market_value: Decimal
    positions_with_prices: int
    gain_loss: Decimal
    gain_loss_pct: Decimal


@dataclass
class PositionGainLoss:
    invested: Decimal
    market_value: Decimal
    gain_loss: Decimal
    gain_loss_pct: Decimal
    has_price: bool


@dataclass
class PositionWeight:
    symbol: str
    market_value: Decimal
    weight: Decimal


@dataclass
class TypeAllocation:
    asset_type: str
    value: Decimal
    weight: Decimal


@dataclass
class SectorAllocation:
    sector: str
    value: Decimal
    weight: Decimal


def _pct(part: Decimal, whole: Decimal) -> Decimal:
    return part / whole * HUNDRED if whole > 0 else ZERO


def market_value(position: Position, prices: Prices) -> Decimal:
    price = prices.get(position.symbol)
    return position.shares * price if price else position.cost_basis


def calculate_portfolio_totals(positions: Iterable[Position], prices: Prices) -> PortfolioTotals:
    invested = ZERO
    value = ZERO
    with_prices = 0
    for position in positions:
        invested += position.cost_basis
        value += market_value(position, prices)
        if prices.get(position.symbol):
            with_prices += 1

    gain_loss = value - invested
    return PortfolioTotals(
        total_invested=invested,
        total_market_value=value,
        positions_with_prices=with_prices,
        gain_loss=gain_loss,
        gain_loss_pct=_pct(gain_loss, invested),
    )


def calculate_position_gain_loss(
    position: Position, current_price: Optional[Decimal]
) -> PositionGainLoss:
    """Gain/loss of one position; a price of None means "not quoted"."""
    invested = position.cost_basis
    has_price = current_price is not None
    value = position.shares * current_price if current_price is not None else invested
    gain_loss = value - invested
    return PositionGainLoss(
        invested=invested,
        market_value=value,
        gain_loss=gain_loss,
        gain_loss_pct=_pct(gain_loss, invested),
        has_price=has_price,
    )


def calculate_portfolio_weights(
    positions: Iterable[Position], prices: Prices
) -> list[PositionWeight]:
    """Share of total market value held in each position, in portfolio order."""
    values = [(p.symbol, market_value(p, prices)) for p in positions]
    total = sum((v for _, v in values), ZERO)
    return [PositionWeight(symbol, v, _pct(v, total)) for symbol, v in values]


def aggregate_by_type(
    positions: Iterable[Position], prices: Prices
) -> tuple[list[TypeAllocation], Decimal]:
    """
    Market value per asset type.

    Returns:
        (allocations sorted by value descending, total market value); positions
        without a type are counted as "Other"
    """
    by_type: dict[str, Decimal] = {}
    total = ZERO
    for position in positions:
        value = market_value(position, prices)
        total += value
        key = position.asset_type or "Other"
        by_type[key] = by_type.get(key, ZERO) + value

    allocations = [
        TypeAllocation(asset_type, value, _pct(value, total))
        for asset_type, value in by_type.items()
    ]
    allocations.sort(key=lambda a: a.value, reverse=True)
    return allocations, total


def aggregate_by_sector(
    positions: Iterable[Position],
    prices: Prices,
    sector_of: Callable[[str], str],
) -> tuple[list[SectorAllocation], Decimal]:
    """
    Market value per sector.

    Args:
        positions: Positions to aggregate
        prices: Current prices by symbol
        sector_of: Sector for a symbol

    Returns:
        (allocations sorted by value descending, total market value)
    """
    by_sector: dict[str, Decimal] = {}
    total = ZERO
    for position in positions:
        value = market_value(position, prices)
        total += value
        sector = sector_of(position.symbol)
        by_sector[sector] = by_sector.get(sector, ZERO) + value

    allocations = [
        SectorAllocation(sector, value, _pct(value, total)) for sector, value in by_sector.items()
    ]
    allocations.sort(key=lambda a: a.value, reverse=True)
    return allocations, total
