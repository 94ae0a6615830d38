"""
SQLAlchemy tables backing the portfolio store.

Rows are converted to and from the frozen domain models by SqlStorage; nothing
outside the storage package touches these classes.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    TIMESTAMP,
    Boolean,
    CheckConstraint,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from folio_tracker.storage.db import Base

MONEY = Numeric(precision=20, scale=8)


class AssetRow(Base):
    """Asset registry: one row per known ticker, with the ISIN it resolves from."""

    __tablename__ = "assets"

    ticker: Mapped[str] = mapped_column(String(20), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    asset_type: Mapped[str] = mapped_column(String(50), nullable=False, default="Stock")
    isin: Mapped[Optional[str]] = mapped_column(String(12), nullable=True, index=True)
    stock_exchange: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    sector: Mapped[str] = mapped_column(String(100), nullable=False, default="Other")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP,
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class PositionRow(Base):
    """Portfolio positions, active and inactive."""

    __tablename__ = "positions"

    symbol: Mapped[str] = mapped_column(String(20), primary_key=True)
    position_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    platform: Mapped[str] = mapped_column(String(100), nullable=False, default="Unknown")
    asset_type: Mapped[str] = mapped_column(String(50), nullable=False, default="Stock")
    shares: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    avg_price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    needs_current_price: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    resolved_from: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    __table_args__ = (CheckConstraint("shares >= 0", name="check_shares_non_negative"),)


class TransactionRow(Base):
    """Append-only transaction log, ordered per symbol by sequence."""

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    symbol: Mapped[str] = mapped_column(String(20), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(String(4), nullable=False)
    shares: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    date: Mapped[str] = mapped_column(String(10), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    exchange_rate: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("1"))
    timestamp: Mapped[str] = mapped_column(String(40), nullable=False, default="")
    cost_basis: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)
    realized_gain_loss: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)

    __table_args__ = (
        Index("idx_transactions_symbol_sequence", "symbol", "sequence", unique=True),
        CheckConstraint("type IN ('buy', 'sell')", name="check_transaction_type"),
    )


class SnapshotRow(Base):
    """Portfolio value snapshots keyed by their timestamp."""

    __tablename__ = "snapshots"

    timestamp: Mapped[str] = mapped_column(String(40), primary_key=True)
    total_invested: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    total_market_value: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    position_count: Mapped[int] = mapped_column(Integer, nullable=False)
    prices_available: Mapped[int] = mapped_column(Integer, nullable=False)


class PriceHistoryRow(Base):
    """Every successful live quote, newest last."""

    __tablename__ = "price_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticker: Mapped[str] = mapped_column(String(20), nullable=False)
    price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    source: Mapped[str] = mapped_column(String(100), nullable=False)
    fetched_at: Mapped[str] = mapped_column(String(40), nullable=False)

    __table_args__ = (Index("idx_price_history_ticker_fetched", "ticker", "fetched_at"),)
