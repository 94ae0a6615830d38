"""
Transaction model for the per-symbol audit trail.

Transactions are append-only: the ledger never edits or reorders them, and
realized gain/loss totals are always derived from the list.
"""

import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


class TransactionType(str, enum.Enum):
    """Enumeration of transaction types."""

    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class Transaction:
    """
    A single buy or sell.

    Attributes:
        type: buy or sell
        shares: Units bought or sold
        price: Price per unit (total_amount / shares)
        date: Trade date, ISO formatted
        total_amount: Total paid or received
        currency: Currency of the amounts
        exchange_rate: Rate to the reporting currency at trade time
        timestamp: When the transaction was recorded (ISO datetime)
        cost_basis: Average price at the time of a sale (sells only)
        realized_gain_loss: (price - cost_basis) * shares (sells only)
    """

    type: TransactionType
    shares: Decimal
    price: Decimal
    date: str
    total_amount: Decimal
    currency: str = "USD"
    exchange_rate: Decimal = Decimal("1")
    timestamp: str = ""
    cost_basis: Optional[Decimal] = None
    realized_gain_loss: Optional[Decimal] = None

    @property
    def is_sell(self) -> bool:
        return self.type == TransactionType.SELL


@dataclass(frozen=True)
class SaleRecord:
    """A sell transaction tagged with the symbol it belongs to."""

    symbol: str
    transaction: Transaction

    @property
    def date(self) -> str:
        return self.transaction.date

    @property
    def realized_gain_loss(self) -> Optional[Decimal]:
        return self.transaction.realized_gain_loss
