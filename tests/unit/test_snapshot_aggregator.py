"""Unit tests for snapshot building and merging."""

from decimal import Decimal

import pytest
from freezegun import freeze_time

from folio_tracker.models import Position, Snapshot
from folio_tracker.services.snapshot_aggregator import build_snapshot, merge_snapshots


def snap(timestamp, invested="100", value="110"):
    return Snapshot(timestamp, Decimal(invested), Decimal(value), 1, 1)


@pytest.mark.unit
class TestBuildSnapshot:
    """Test suite for build_snapshot."""

    def test_totals_with_and_without_prices(self):
        positions = [
            Position("AAPL", Decimal("10"), Decimal("150")),
            Position("MSFT", Decimal("2"), Decimal("300")),
        ]

        snapshot = build_snapshot(positions, {"AAPL": Decimal("200")}, timestamp="t1")

        assert snapshot.timestamp == "t1"
        assert snapshot.total_invested == Decimal("2100")
        assert snapshot.total_market_value == Decimal("2600")
        assert snapshot.position_count == 2
        assert snapshot.prices_available == 1
        assert snapshot.gain_loss == Decimal("500")

    def test_zero_price_falls_back_to_cost(self):
        positions = [Position("AAPL", Decimal("10"), Decimal("150"))]

        snapshot = build_snapshot(positions, {"AAPL": Decimal("0")}, timestamp="t1")

        assert snapshot.total_market_value == Decimal("1500")

    def test_prices_available_counts_every_price(self):
        """Prices for symbols no longer held still count."""
        positions = [Position("AAPL", Decimal("1"), Decimal("150"))]
        prices = {"AAPL": Decimal("160"), "SOLD": Decimal("10"), "GONE": Decimal("5")}

        assert build_snapshot(positions, prices, timestamp="t").prices_available == 3

    def test_inactive_positions_are_counted(self):
        positions = [
            Position("AAPL", Decimal("1"), Decimal("150")),
            Position("OLD", Decimal("0"), Decimal("99")),
        ]

        snapshot = build_snapshot(positions, {}, timestamp="t")

        assert snapshot.position_count == 2
        assert snapshot.total_invested == Decimal("150")

    @freeze_time("2025-05-01 12:00:00")
    def test_default_timestamp_is_utc_now(self):
        snapshot = build_snapshot([], {})
        assert snapshot.timestamp == "2025-05-01T12:00:00+00:00"
        assert snapshot.total_invested == Decimal("0")


@pytest.mark.unit
class TestMergeSnapshots:
    """Test suite for merge_snapshots."""

    def test_union_sorted_ascending(self):
        merged = merge_snapshots([snap("2025-03-01"), snap("2025-01-01")], [snap("2025-02-01")])
        assert [s.timestamp for s in merged] == ["2025-01-01", "2025-02-01", "2025-03-01"]

    def test_existing_wins_on_collision(self):
        existing = [snap("2025-01-01", value="110")]
        incoming = [snap("2025-01-01", value="999")]

        merged = merge_snapshots(existing, incoming)

        assert len(merged) == 1
        assert merged[0].total_market_value == Decimal("110")

    def test_merge_is_idempotent(self):
        existing = [snap("2025-01-01")]
        incoming = [snap("2025-02-01")]

        once = merge_snapshots(existing, incoming)
        twice = merge_snapshots(once, incoming)

        assert once == twice

    def test_empty_inputs(self):
        assert merge_snapshots([], []) == []
