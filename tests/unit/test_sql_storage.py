"""Unit tests for the SQLite store."""

from decimal import Decimal

import pytest

from folio_tracker.models import (
    AssetRecord,
    Position,
    PriceRecord,
    Snapshot,
    Transaction,
    TransactionType,
)
from folio_tracker.storage import SqlStorage


@pytest.fixture
def storage():
    return SqlStorage()


def buy(shares, price, date="2025-01-10"):
    return Transaction(
        type=TransactionType.BUY,
        shares=Decimal(shares),
        price=Decimal(price),
        date=date,
        total_amount=Decimal(shares) * Decimal(price),
        currency="EUR",
        exchange_rate=Decimal("1"),
        timestamp="2025-01-10T10:00:00+00:00",
    )


@pytest.mark.unit
class TestSqlStorage:
    """Test suite for SqlStorage."""

    def test_empty_database(self, storage):
        assert storage.load_positions() == []
        assert storage.load_transactions() == {}
        assert storage.load_snapshots() == []
        assert storage.load_latest_prices() == {}
        assert storage.load_assets() == []

    def test_positions_keep_order(self, storage):
        storage.save_positions(
            [
                Position("MSFT", Decimal("1.5"), Decimal("300"), platform="IBKR"),
                Position("AAPL", Decimal("0"), Decimal("150"), resolved_from="US0378331005"),
                Position("NVDA", Decimal("2"), Decimal("0"), needs_current_price=True),
            ]
        )

        positions = storage.load_positions()

        assert [p.symbol for p in positions] == ["MSFT", "AAPL", "NVDA"]
        assert positions[0].shares == Decimal("1.5")
        assert positions[0].platform == "IBKR"
        assert positions[1].resolved_from == "US0378331005"
        assert positions[2].needs_current_price is True

    def test_save_positions_replaces_list(self, storage):
        storage.save_positions([Position("AAPL", Decimal("1"), Decimal("1"))])
        storage.save_positions([Position("MSFT", Decimal("1"), Decimal("1"))])

        assert [p.symbol for p in storage.load_positions()] == ["MSFT"]

    def test_transactions_round_trip(self, storage):
        sell = Transaction(
            type=TransactionType.SELL,
            shares=Decimal("1"),
            price=Decimal("200"),
            date="2025-02-01",
            total_amount=Decimal("200"),
            cost_basis=Decimal("150"),
            realized_gain_loss=Decimal("50"),
        )
        storage.save_transactions({"AAPL": [buy("2", "150"), sell], "MSFT": [buy("1", "300")]})

        loaded = storage.load_transactions()

        assert set(loaded) == {"AAPL", "MSFT"}
        aapl = loaded["AAPL"]
        assert [tx.type for tx in aapl] == [TransactionType.BUY, TransactionType.SELL]
        assert aapl[0].currency == "EUR"
        assert aapl[1].realized_gain_loss == Decimal("50")
        assert aapl[0].cost_basis is None

    def test_save_transactions_replaces_symbol_only(self, storage):
        storage.save_transactions({"AAPL": [buy("1", "1")], "MSFT": [buy("1", "1")]})
        storage.save_transactions({"AAPL": [buy("1", "1"), buy("2", "2")]})

        loaded = storage.load_transactions()

        assert len(loaded["AAPL"]) == 2
        assert len(loaded["MSFT"]) == 1

    def test_delete_transactions_for_symbol(self, storage):
        storage.save_transactions({"AAPL": [buy("1", "1")], "MSFT": [buy("1", "1")]})

        storage.delete_transactions_for_symbol("AAPL")

        assert list(storage.load_transactions()) == ["MSFT"]

    def test_snapshots(self, storage):
        first = Snapshot("2025-01-02T00:00:00", Decimal("100"), Decimal("110"), 1, 1)
        duplicate = Snapshot("2025-01-02T00:00:00", Decimal("999"), Decimal("999"), 9, 9)
        earlier = Snapshot("2025-01-01T00:00:00", Decimal("100"), Decimal("90"), 1, 0)

        storage.save_snapshot(first)
        storage.save_snapshot(duplicate)
        storage.save_snapshot(earlier)

        snapshots = storage.load_snapshots()
        assert [s.timestamp for s in snapshots] == ["2025-01-01T00:00:00", "2025-01-02T00:00:00"]
        assert snapshots[1].total_invested == Decimal("100")

        assert storage.delete_snapshot("2025-01-01T00:00:00") is True
        assert storage.delete_snapshot("missing") is False
        assert storage.clear_snapshots() == 1
        assert storage.load_snapshots() == []

    def test_latest_price_wins(self, storage):
        storage.save_price_history(
            [
                PriceRecord("AAPL", Decimal("180"), "USD", "Finnhub", "2025-01-01T00:00:00"),
                PriceRecord("AAPL", Decimal("190"), "USD", "Finnhub", "2025-01-02T00:00:00"),
                PriceRecord("SAP.DE", Decimal("230"), "EUR", "FMP", "2025-01-01T00:00:00"),
            ]
        )

        assert storage.load_latest_prices() == {
            "AAPL": Decimal("190"),
            "SAP.DE": Decimal("230"),
        }

    def test_assets_upsert_keeps_known_isin(self, storage):
        storage.save_assets([AssetRecord("AAPL", "Apple", isin="US0378331005")])
        storage.save_assets([AssetRecord("AAPL", "Apple Inc.", stock_exchange="US")])

        assets = storage.load_assets()

        assert len(assets) == 1
        assert assets[0].name == "Apple Inc."
        assert assets[0].isin == "US0378331005"
        assert assets[0].stock_exchange == "US"

    def test_assets_upsert_keeps_known_sector(self, storage):
        storage.save_assets([AssetRecord("NVDA", "NVIDIA")])
        storage.save_assets([AssetRecord("NVDA", "NVIDIA", sector="Semiconductors")])
        storage.save_assets([AssetRecord("NVDA", "NVIDIA Corp")])

        (asset,) = storage.load_assets()

        assert asset.sector == "Semiconductors"
        assert asset.name == "NVIDIA Corp"

    def test_assets_repeated_ticker_in_one_batch(self, storage):
        storage.save_assets(
            [
                AssetRecord("AAPL", "Apple", isin="US0378331005"),
                AssetRecord("AAPL", "Apple Inc."),
            ]
        )

        assets = storage.load_assets()

        assert [a.ticker for a in assets] == ["AAPL"]
        assert assets[0].name == "Apple Inc."
        assert assets[0].isin == "US0378331005"
