"""
Position ledger with weighted-average cost basis and realized gain/loss.

The ledger is immutable: every mutation returns a new Ledger (or the same
instance when validation fails) together with the transaction it recorded or
an error message, never both. Validation problems are values, not exceptions.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Mapping, NamedTuple, Optional, Sequence, Union

from dateutil import parser as date_parser

from folio_tracker.models import (
    DEFAULT_PLATFORM,
    AssetType,
    Position,
    SaleRecord,
    Transaction,
    TransactionType,
)

logger = logging.getLogger(__name__)

Number = Union[Decimal, int, str, float]


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _fmt(value: Decimal) -> str:
    """100.00000000 -> '100', 12.50 -> '12.5'."""
    return format(value.normalize(), "f")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class LedgerResult:
    """Outcome of a ledger mutation."""

    ledger: "Ledger"
    transaction: Optional[Transaction] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class Ledger:
    """
    Positions plus the append-only transaction log of each symbol.

    Attributes:
        positions: Positions in display order, one per symbol
        transactions: Transactions per symbol, oldest first
    """

    positions: tuple[Position, ...] = ()
    transactions: Mapping[str, tuple[Transaction, ...]] = field(default_factory=dict)

    @classmethod
    def from_state(
        cls,
        positions: Iterable[Position],
        transactions: Optional[Mapping[str, Sequence[Transaction]]] = None,
    ) -> "Ledger":
        return cls(
            positions=tuple(positions),
            transactions={s: tuple(txs) for s, txs in (transactions or {}).items()},
        )

    def position(self, symbol: str) -> Optional[Position]:
        symbol = symbol.strip().upper()
        for position in self.positions:
            if position.symbol == symbol:
                return position
        return None

    def transactions_for(self, symbol: str) -> tuple[Transaction, ...]:
        return self.transactions.get(symbol.strip().upper(), ())

    @property
    def symbols(self) -> list[str]:
        return [p.symbol for p in self.positions]

    # Mutations

    def add(
        self,
        symbol: str,
        shares: Number,
        total_amount: Number,
        date: str,
        name: Optional[str] = None,
        asset_type: Optional[str] = None,
        platform: Optional[str] = None,
        currency: str = "USD",
        exchange_rate: Number = Decimal("1"),
    ) -> LedgerResult:
        """
        Open a position, or reactivate a closed one.

        Fails when an active position already exists (use ``buy``). Reactivation
        overwrites shares and average price; name, type and platform are only
        replaced when given.
        """
        symbol = symbol.strip().upper()
        qty, total = _to_decimal(shares), _to_decimal(total_amount)
        error = _validate_amounts(symbol, qty, total)
        if error:
            return LedgerResult(self, error=error)

        existing = self.position(symbol)
        if existing is not None and existing.is_active:
            return LedgerResult(
                self, error=f"Active position for {symbol} already exists — use buy instead"
            )

        price = total / qty
        if existing is not None:
            updated = existing.with_changes(
                shares=qty,
                avg_price=price,
                name=name or existing.name,
                asset_type=asset_type or existing.asset_type,
                platform=platform or existing.platform,
                needs_current_price=False,
            )
            logger.info(f"Reactivated {symbol}: {_fmt(qty)} @ {_fmt(price)}")
        else:
            updated = Position(
                symbol=symbol,
                shares=qty,
                avg_price=price,
                name=name or symbol,
                platform=platform or DEFAULT_PLATFORM,
                asset_type=asset_type or AssetType.STOCK.value,
            )
            logger.info(f"Opened {symbol}: {_fmt(qty)} @ {_fmt(price)}")

        tx = Transaction(
            type=TransactionType.BUY,
            shares=qty,
            price=price,
            date=date,
            total_amount=total,
            currency=currency,
            exchange_rate=_to_decimal(exchange_rate),
            timestamp=_now(),
        )
        return LedgerResult(self._with(updated, symbol, tx), transaction=tx)

    def buy(
        self,
        symbol: str,
        shares: Number,
        total_amount: Number,
        date: str,
        currency: str = "USD",
        exchange_rate: Number = Decimal("1"),
    ) -> LedgerResult:
        """Add shares to an existing position and recompute the weighted average."""
        symbol = symbol.strip().upper()
        qty, total = _to_decimal(shares), _to_decimal(total_amount)
        error = _validate_amounts(symbol, qty, total)
        if error:
            return LedgerResult(self, error=error)

        existing = self.position(symbol)
        if existing is None:
            return LedgerResult(self, error=f"Position {symbol} not found")

        price_per_share = total / qty
        new_shares = existing.shares + qty
        new_avg = (existing.shares * existing.avg_price + qty * price_per_share) / new_shares
        updated = existing.with_changes(
            shares=new_shares, avg_price=new_avg, needs_current_price=False
        )

        tx = Transaction(
            type=TransactionType.BUY,
            shares=qty,
            price=price_per_share,
            date=date,
            total_amount=total,
            currency=currency,
            exchange_rate=_to_decimal(exchange_rate),
            timestamp=_now(),
        )
        logger.info(f"Bought {_fmt(qty)} {symbol}; avg price now {new_avg:.4f}")
        return LedgerResult(self._with(updated, symbol, tx), transaction=tx)

    def sell(
        self,
        symbol: str,
        shares: Number,
        total_amount: Number,
        date: str,
        currency: str = "USD",
        exchange_rate: Number = Decimal("1"),
    ) -> LedgerResult:
        """
        Sell shares at the current average cost.

        The average price is left unchanged; the sale records its cost basis
        and realized gain/loss. Selling every share makes the position inactive.
        """
        symbol = symbol.strip().upper()
        qty, total = _to_decimal(shares), _to_decimal(total_amount)
        error = _validate_amounts(symbol, qty, total)
        if error:
            return LedgerResult(self, error=error)

        existing = self.position(symbol)
        if existing is None:
            return LedgerResult(self, error=f"Position {symbol} not found")
        if qty > existing.shares:
            return LedgerResult(
                self,
                error=(
                    f"Cannot sell {_fmt(qty)} shares of {symbol}, "
                    f"only {_fmt(existing.shares)} available"
                ),
            )

        price_per_share = total / qty
        cost_basis = existing.avg_price
        realized = (price_per_share - cost_basis) * qty
        updated = existing.with_changes(shares=existing.shares - qty)

        tx = Transaction(
            type=TransactionType.SELL,
            shares=qty,
            price=price_per_share,
            date=date,
            total_amount=total,
            currency=currency,
            exchange_rate=_to_decimal(exchange_rate),
            timestamp=_now(),
            cost_basis=cost_basis,
            realized_gain_loss=realized,
        )
        logger.info(f"Sold {_fmt(qty)} {symbol}; realized {realized:.2f}")
        return LedgerResult(self._with(updated, symbol, tx), transaction=tx)

    def remove(self, symbol: str) -> tuple["Ledger", Optional[Position]]:
        """
        Delete a position and its entire transaction history.

        Returns:
            (new ledger, removed position); the same ledger and None when the
            symbol is unknown
        """
        symbol = symbol.strip().upper()
        removed = self.position(symbol)
        if removed is None:
            return self, None
        positions = tuple(p for p in self.positions if p.symbol != symbol)
        transactions = {s: txs for s, txs in self.transactions.items() if s != symbol}
        logger.info(f"Removed {symbol} and {len(self.transactions_for(symbol))} transaction(s)")
        return Ledger(positions, transactions), removed

    def import_positions(
        self, positions: Sequence[Position], replace: bool = False
    ) -> tuple["Ledger", list[str]]:
        """
        Merge imported positions into the ledger.

        In add mode an imported symbol already in the portfolio overwrites the
        existing position (with a warning); new symbols are appended. A symbol
        repeated within the import keeps its last row. In
        replace mode the imported list becomes the whole portfolio. Transaction
        history is kept in both modes.
        """
        warnings: list[str] = []
        if replace:
            merged = list(dict((p.symbol, p) for p in positions).values())
            return Ledger(tuple(merged), dict(self.transactions)), warnings

        existing = {p.symbol for p in self.positions}
        by_symbol = {p.symbol: p for p in self.positions}
        order = list(by_symbol)
        for position in positions:
            if position.symbol in existing:
                warnings.append(
                    f"{position.symbol}: Already in portfolio — "
                    "will be updated with imported data"
                )
                # One warning per symbol even if the import repeats it
                existing.discard(position.symbol)
            elif position.symbol not in by_symbol:
                order.append(position.symbol)
            by_symbol[position.symbol] = position
        return Ledger(tuple(by_symbol[s] for s in order), dict(self.transactions)), warnings

    def fill_missing_cost_basis(
        self, prices: Mapping[str, Decimal]
    ) -> tuple["Ledger", list[str], list[str]]:
        """
        Use current prices as the cost basis of positions imported without one.

        Returns:
            (new ledger, symbols filled, symbols still without a cost basis)
        """
        filled: list[str] = []
        unfilled: list[str] = []
        updated: list[Position] = []
        for position in self.positions:
            if position.needs_current_price and position.avg_price <= 0:
                price = prices.get(position.symbol)
                if price is not None and price > 0:
                    position = position.with_changes(avg_price=price, needs_current_price=False)
                    filled.append(position.symbol)
                else:
                    unfilled.append(position.symbol)
            updated.append(position)
        if not filled:
            return self, filled, unfilled
        return Ledger(tuple(updated), dict(self.transactions)), filled, unfilled

    def _with(self, position: Position, symbol: str, tx: Transaction) -> "Ledger":
        if self.position(symbol) is None:
            positions = self.positions + (position,)
        else:
            positions = tuple(position if p.symbol == symbol else p for p in self.positions)
        transactions = dict(self.transactions)
        transactions[symbol] = self.transactions_for(symbol) + (tx,)
        return Ledger(positions, transactions)


def _validate_amounts(symbol: str, shares: Decimal, total_amount: Decimal) -> Optional[str]:
    if not symbol:
        return "Symbol is required"
    if not shares.is_finite() or shares <= 0:
        return f"Invalid quantity {shares} for {symbol}: must be greater than zero"
    if not total_amount.is_finite() or total_amount < 0:
        return f"Invalid total amount {total_amount} for {symbol}: cannot be negative"
    return None


# Read side


class Partition(NamedTuple):
    active: list[Position]
    inactive: list[Position]


def partition(positions: Iterable[Position]) -> Partition:
    """Split positions into active (shares > 0) and inactive ones."""
    active: list[Position] = []
    inactive: list[Position] = []
    for position in positions:
        (active if position.is_active else inactive).append(position)
    return Partition(active, inactive)


def _sort_key(record: SaleRecord) -> datetime:
    try:
        parsed = date_parser.parse(record.date)
    except (ValueError, OverflowError):
        return datetime.min
    return parsed.replace(tzinfo=None)


def collect_sales_history(
    transactions: Mapping[str, Sequence[Transaction]],
) -> list[SaleRecord]:
    """All sells across symbols, tagged with their symbol, newest first."""
    sales = [
        SaleRecord(symbol=symbol, transaction=tx)
        for symbol, txs in transactions.items()
        for tx in txs
        if tx.is_sell
    ]
    return sorted(sales, key=_sort_key, reverse=True)


def total_realized_pnl(sales: Iterable[SaleRecord]) -> Decimal:
    """Sum of realized gain/loss; sales without a recorded value count as zero."""
    return sum((sale.realized_gain_loss or Decimal("0") for sale in sales), Decimal("0"))
