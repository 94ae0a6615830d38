"""SQLite implementation of PortfolioStorage."""

import logging
from decimal import Decimal
from typing import Mapping, Sequence

from sqlalchemy.exc import SQLAlchemyError

from folio_tracker.lib.errors import StorageError
from folio_tracker.lib.sectors import is_known_sector
from folio_tracker.models import (
    AssetRecord,
    Position,
    PriceRecord,
    Snapshot,
    Transaction,
    TransactionType,
)
from folio_tracker.storage.db import db_session
from folio_tracker.storage.tables import (
    AssetRow,
    PositionRow,
    PriceHistoryRow,
    SnapshotRow,
    TransactionRow,
)

logger = logging.getLogger(__name__)


class SqlStorage:
    """Portfolio store backed by the SQLAlchemy session in storage.db.

    Every method runs in its own session; SQLAlchemy errors are re-raised as
    StorageError.
    """

    # Assets

    def save_assets(self, records: Sequence[AssetRecord]) -> None:
        try:
            with db_session() as session:
                # session.get() does not see rows added but not yet flushed
                pending: dict[str, AssetRow] = {}
                for record in records:
                    row = pending.get(record.ticker) or session.get(AssetRow, record.ticker)
                    if row is None:
                        row = AssetRow(ticker=record.ticker)
                        session.add(row)
                    pending[record.ticker] = row
                    row.name = record.name or record.ticker
                    row.asset_type = record.asset_type
                    # Keep a previously learned ISIN or sector when the update has none
                    row.isin = record.isin or row.isin
                    row.stock_exchange = record.stock_exchange
                    if is_known_sector(record.sector) or not row.sector:
                        row.sector = record.sector
                    row.currency = record.currency
        except SQLAlchemyError as e:
            raise StorageError("save assets", e) from e
        logger.debug(f"Saved {len(records)} asset record(s)")

    def load_assets(self) -> list[AssetRecord]:
        try:
            with db_session() as session:
                rows = session.query(AssetRow).order_by(AssetRow.ticker).all()
                return [
                    AssetRecord(
                        ticker=row.ticker,
                        name=row.name,
                        asset_type=row.asset_type,
                        isin=row.isin,
                        stock_exchange=row.stock_exchange,
                        sector=row.sector,
                        currency=row.currency,
                    )
                    for row in rows
                ]
        except SQLAlchemyError as e:
            raise StorageError("load assets", e) from e

    # Positions

    def save_positions(self, positions: Sequence[Position]) -> None:
        try:
            with db_session() as session:
                session.query(PositionRow).delete()
                for order, position in enumerate(positions):
                    session.add(
                        PositionRow(
                            symbol=position.symbol,
                            position_order=order,
                            name=position.name,
                            platform=position.platform,
                            asset_type=position.asset_type,
                            shares=position.shares,
                            avg_price=position.avg_price,
                            needs_current_price=position.needs_current_price,
                            resolved_from=position.resolved_from,
                        )
                    )
        except SQLAlchemyError as e:
            raise StorageError("save positions", e) from e

    def load_positions(self) -> list[Position]:
        try:
            with db_session() as session:
                rows = session.query(PositionRow).order_by(PositionRow.position_order).all()
                return [
                    Position(
                        symbol=row.symbol,
                        shares=Decimal(row.shares),
                        avg_price=Decimal(row.avg_price),
                        name=row.name,
                        platform=row.platform,
                        asset_type=row.asset_type,
                        needs_current_price=row.needs_current_price,
                        resolved_from=row.resolved_from,
                    )
                    for row in rows
                ]
        except SQLAlchemyError as e:
            raise StorageError("load positions", e) from e

    # Transactions

    def save_transactions(self, by_symbol: Mapping[str, Sequence[Transaction]]) -> None:
        try:
            with db_session() as session:
                for symbol, transactions in by_symbol.items():
                    session.query(TransactionRow).filter_by(symbol=symbol).delete()
                    for sequence, tx in enumerate(transactions):
                        session.add(
                            TransactionRow(
                                symbol=symbol,
                                sequence=sequence,
                                type=tx.type.value,
                                shares=tx.shares,
                                price=tx.price,
                                date=tx.date,
                                total_amount=tx.total_amount,
                                currency=tx.currency,
                                exchange_rate=tx.exchange_rate,
                                timestamp=tx.timestamp,
                                cost_basis=tx.cost_basis,
                                realized_gain_loss=tx.realized_gain_loss,
                            )
                        )
        except SQLAlchemyError as e:
            raise StorageError("save transactions", e) from e

    def load_transactions(self) -> dict[str, list[Transaction]]:
        try:
            with db_session() as session:
                rows = (
                    session.query(TransactionRow)
                    .order_by(TransactionRow.symbol, TransactionRow.sequence)
                    .all()
                )
                by_symbol: dict[str, list[Transaction]] = {}
                for row in rows:
                    by_symbol.setdefault(row.symbol, []).append(
                        Transaction(
                            type=TransactionType(row.type),
                            shares=Decimal(row.shares),
                            price=Decimal(row.price),
                            date=row.date,
                            total_amount=Decimal(row.total_amount),
                            currency=row.currency,
                            exchange_rate=Decimal(row.exchange_rate),
                            timestamp=row.timestamp,
                            cost_basis=(
                                Decimal(row.cost_basis) if row.cost_basis is not None else None
                            ),
                            realized_gain_loss=(
                                Decimal(row.realized_gain_loss)
                                if row.realized_gain_loss is not None
                                else None
                            ),
                        )
                    )
                return by_symbol
        except SQLAlchemyError as e:
            raise StorageError("load transactions", e) from e

    def delete_transactions_for_symbol(self, symbol: str) -> None:
        try:
            with db_session() as session:
                session.query(TransactionRow).filter_by(symbol=symbol).delete()
        except SQLAlchemyError as e:
            raise StorageError(f"delete transactions for {symbol}", e) from e

    # Snapshots

    def save_snapshot(self, snapshot: Snapshot) -> None:
        try:
            with db_session() as session:
                if session.get(SnapshotRow, snapshot.timestamp) is not None:
                    logger.debug(f"Snapshot {snapshot.timestamp} already stored")
                    return
                session.add(
                    SnapshotRow(
                        timestamp=snapshot.timestamp,
                        total_invested=snapshot.total_invested,
                        total_market_value=snapshot.total_market_value,
                        position_count=snapshot.position_count,
                        prices_available=snapshot.prices_available,
                    )
                )
        except SQLAlchemyError as e:
            raise StorageError("save snapshot", e) from e

    def load_snapshots(self) -> list[Snapshot]:
        try:
            with db_session() as session:
                rows = session.query(SnapshotRow).order_by(SnapshotRow.timestamp).all()
                return [
                    Snapshot(
                        timestamp=row.timestamp,
                        total_invested=Decimal(row.total_invested),
                        total_market_value=Decimal(row.total_market_value),
                        position_count=row.position_count,
                        prices_available=row.prices_available,
                    )
                    for row in rows
                ]
        except SQLAlchemyError as e:
            raise StorageError("load snapshots", e) from e

    def delete_snapshot(self, timestamp: str) -> bool:
        try:
            with db_session() as session:
                deleted = session.query(SnapshotRow).filter_by(timestamp=timestamp).delete()
                return bool(deleted)
        except SQLAlchemyError as e:
            raise StorageError(f"delete snapshot {timestamp}", e) from e

    def clear_snapshots(self) -> int:
        try:
            with db_session() as session:
                return int(session.query(SnapshotRow).delete())
        except SQLAlchemyError as e:
            raise StorageError("clear snapshots", e) from e

    # Price history

    def save_price_history(self, records: Sequence[PriceRecord]) -> None:
        try:
            with db_session() as session:
                session.add_all(
                    PriceHistoryRow(
                        ticker=record.ticker,
                        price=record.price,
                        currency=record.currency,
                        source=record.source,
                        fetched_at=record.fetched_at,
                    )
                    for record in records
                )
        except SQLAlchemyError as e:
            raise StorageError("save price history", e) from e

    def load_latest_prices(self) -> dict[str, Decimal]:
        try:
            with db_session() as session:
                rows = (
                    session.query(PriceHistoryRow)
                    .order_by(PriceHistoryRow.fetched_at, PriceHistoryRow.id)
                    .all()
                )
                return {row.ticker: Decimal(row.price) for row in rows}
        except SQLAlchemyError as e:
            raise StorageError("load latest prices", e) from e
