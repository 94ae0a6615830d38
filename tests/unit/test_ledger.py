"""Unit tests for the position ledger."""

from decimal import Decimal

import pytest

from folio_tracker.models import Position, Transaction, TransactionType
from folio_tracker.services.ledger import (
    Ledger,
    collect_sales_history,
    partition,
    total_realized_pnl,
)


@pytest.fixture
def ledger():
    """Ledger holding 10 AAPL at 150."""
    result = Ledger().add("AAPL", 10, 1500, "2025-01-10", name="Apple Inc.", platform="IBKR")
    assert result.ok
    return result.ledger


@pytest.mark.unit
class TestAdd:
    """Test suite for opening positions."""

    def test_add_new_position(self):
        result = Ledger().add("aapl", "10", "1500", "2025-01-10")

        assert result.ok
        position = result.ledger.position("AAPL")
        assert position.shares == Decimal("10")
        assert position.avg_price == Decimal("150")
        assert position.name == "AAPL"
        assert position.platform == "Unknown"
        assert position.asset_type == "Stock"

        tx = result.transaction
        assert tx.type == TransactionType.BUY
        assert tx.price == Decimal("150")
        assert tx.total_amount == Decimal("1500")
        assert result.ledger.transactions_for("AAPL") == (tx,)

    def test_add_does_not_mutate_original(self):
        original = Ledger()
        original.add("AAPL", 1, 100, "2025-01-10")
        assert original.positions == ()

    def test_add_rejects_existing_active_position(self, ledger):
        result = ledger.add("AAPL", 5, 800, "2025-02-01")

        assert not result.ok
        assert result.error == "Active position for AAPL already exists — use buy instead"
        assert result.ledger is ledger
        assert result.transaction is None

    def test_add_reactivates_closed_position(self, ledger):
        closed = ledger.sell("AAPL", 10, 1700, "2025-02-01").ledger

        result = closed.add("AAPL", 2, 400, "2025-03-01", platform="Lightyear")

        position = result.ledger.position("AAPL")
        assert position.shares == Decimal("2")
        assert position.avg_price == Decimal("200")
        assert position.name == "Apple Inc."
        assert position.platform == "Lightyear"
        assert len(result.ledger.transactions_for("AAPL")) == 3
        assert result.ledger.symbols == ["AAPL"]

    @pytest.mark.parametrize(
        "shares,total,message",
        [
            (0, 100, "Invalid quantity 0 for AAPL: must be greater than zero"),
            (-1, 100, "Invalid quantity -1 for AAPL: must be greater than zero"),
            (1, -5, "Invalid total amount -5 for AAPL: cannot be negative"),
        ],
    )
    def test_add_validation(self, shares, total, message):
        result = Ledger().add("AAPL", shares, total, "2025-01-10")
        assert result.error == message
        assert result.ledger.positions == ()

    def test_add_requires_symbol(self):
        assert Ledger().add("  ", 1, 1, "2025-01-10").error == "Symbol is required"

    def test_zero_total_is_allowed(self):
        result = Ledger().add("GIFT", 1, 0, "2025-01-10")
        assert result.ok
        assert result.ledger.position("GIFT").avg_price == Decimal("0")


@pytest.mark.unit
class TestBuy:
    """Test suite for adding to positions."""

    def test_buy_recomputes_weighted_average(self, ledger):
        result = ledger.buy("AAPL", 10, 1700, "2025-02-01")

        position = result.ledger.position("AAPL")
        assert position.shares == Decimal("20")
        assert position.avg_price == Decimal("160")
        assert result.transaction.price == Decimal("170")

    def test_buy_unknown_symbol(self, ledger):
        result = ledger.buy("MSFT", 1, 300, "2025-02-01")
        assert result.error == "Position MSFT not found"

    def test_buy_clears_missing_cost_basis_flag(self):
        imported = Position("NVDA", Decimal("3"), Decimal("0"), needs_current_price=True)
        ledger = Ledger.from_state([imported])

        result = ledger.buy("NVDA", 1, 100, "2025-02-01")

        assert result.ledger.position("NVDA").needs_current_price is False


@pytest.mark.unit
class TestSell:
    """Test suite for selling."""

    def test_sell_records_realized_gain(self, ledger):
        result = ledger.sell("AAPL", 4, 800, "2025-02-01")

        position = result.ledger.position("AAPL")
        assert position.shares == Decimal("6")
        assert position.avg_price == Decimal("150")

        tx = result.transaction
        assert tx.type == TransactionType.SELL
        assert tx.price == Decimal("200")
        assert tx.cost_basis == Decimal("150")
        assert tx.realized_gain_loss == Decimal("200")

    def test_sell_at_a_loss(self, ledger):
        tx = ledger.sell("AAPL", 10, 1000, "2025-02-01").transaction
        assert tx.realized_gain_loss == Decimal("-500")

    def test_sell_everything_keeps_inactive_position(self, ledger):
        result = ledger.sell("AAPL", 10, 1600, "2025-02-01")

        position = result.ledger.position("AAPL")
        assert position is not None
        assert position.is_active is False

    def test_oversell_is_rejected(self, ledger):
        result = ledger.sell("AAPL", "10.5", 2000, "2025-02-01")

        assert result.error == "Cannot sell 10.5 shares of AAPL, only 10 available"
        assert result.ledger is ledger

    def test_sell_unknown_symbol(self, ledger):
        assert ledger.sell("TSLA", 1, 100, "2025-02-01").error == "Position TSLA not found"


@pytest.mark.unit
class TestRemoveAndImport:
    """Test suite for removal, imports and cost basis backfill."""

    def test_remove_drops_history(self, ledger):
        new_ledger, removed = ledger.remove("aapl")

        assert removed.symbol == "AAPL"
        assert new_ledger.positions == ()
        assert new_ledger.transactions_for("AAPL") == ()

    def test_remove_unknown_symbol(self, ledger):
        new_ledger, removed = ledger.remove("MSFT")
        assert removed is None
        assert new_ledger is ledger

    def test_import_add_mode_updates_and_appends(self, ledger):
        imported = [
            Position("AAPL", Decimal("12"), Decimal("155")),
            Position("MSFT", Decimal("3"), Decimal("300")),
        ]

        new_ledger, warnings = ledger.import_positions(imported)

        assert new_ledger.symbols == ["AAPL", "MSFT"]
        assert new_ledger.position("AAPL").shares == Decimal("12")
        assert warnings == ["AAPL: Already in portfolio — will be updated with imported data"]
        assert len(new_ledger.transactions_for("AAPL")) == 1

    def test_import_repeated_symbol_keeps_last_row(self):
        imported = [
            Position("AAPL", Decimal("10"), Decimal("150"), platform="IBKR"),
            Position("MSFT", Decimal("1"), Decimal("300")),
            Position("AAPL", Decimal("5"), Decimal("160"), platform="Lightyear"),
        ]

        new_ledger, warnings = Ledger().import_positions(imported)

        assert warnings == []
        assert new_ledger.symbols == ["AAPL", "MSFT"]
        assert new_ledger.position("AAPL").platform == "Lightyear"

    def test_import_repeated_held_symbol_warns_once(self, ledger):
        imported = [
            Position("AAPL", Decimal("1"), Decimal("150")),
            Position("AAPL", Decimal("2"), Decimal("150")),
        ]

        new_ledger, warnings = ledger.import_positions(imported)

        assert warnings == ["AAPL: Already in portfolio — will be updated with imported data"]
        assert new_ledger.symbols == ["AAPL"]
        assert new_ledger.position("AAPL").shares == Decimal("2")

    def test_import_replace_mode(self, ledger):
        imported = [Position("MSFT", Decimal("3"), Decimal("300"))]

        new_ledger, warnings = ledger.import_positions(imported, replace=True)

        assert new_ledger.symbols == ["MSFT"]
        assert warnings == []

    def test_fill_missing_cost_basis(self):
        ledger = Ledger.from_state(
            [
                Position("NVDA", Decimal("3"), Decimal("0"), needs_current_price=True),
                Position("ASML", Decimal("1"), Decimal("0"), needs_current_price=True),
                Position("AAPL", Decimal("1"), Decimal("150")),
            ]
        )

        new_ledger, filled, unfilled = ledger.fill_missing_cost_basis(
            {"NVDA": Decimal("120"), "AAPL": Decimal("190")}
        )

        assert filled == ["NVDA"]
        assert unfilled == ["ASML"]
        nvda = new_ledger.position("NVDA")
        assert nvda.avg_price == Decimal("120")
        assert nvda.needs_current_price is False
        assert new_ledger.position("AAPL").avg_price == Decimal("150")

    def test_fill_missing_cost_basis_without_prices(self):
        ledger = Ledger.from_state(
            [Position("NVDA", Decimal("3"), Decimal("0"), needs_current_price=True)]
        )

        new_ledger, filled, unfilled = ledger.fill_missing_cost_basis({})

        assert new_ledger is ledger
        assert filled == []
        assert unfilled == ["NVDA"]


@pytest.mark.unit
class TestReadSide:
    """Test suite for partitioning and sales history."""

    def test_partition(self, ledger):
        ledger = ledger.add("MSFT", 1, 300, "2025-01-10").ledger
        ledger = ledger.sell("MSFT", 1, 310, "2025-01-11").ledger

        active, inactive = partition(ledger.positions)

        assert [p.symbol for p in active] == ["AAPL"]
        assert [p.symbol for p in inactive] == ["MSFT"]

    def test_sales_history_newest_first(self, ledger):
        ledger = ledger.sell("AAPL", 1, 160, "2025-01-15").ledger
        ledger = ledger.add("MSFT", 2, 600, "2025-01-10").ledger
        ledger = ledger.sell("MSFT", 1, 250, "2025-03-01").ledger
        ledger = ledger.sell("AAPL", 1, 170, "2025-02-01").ledger

        sales = collect_sales_history(ledger.transactions)

        assert [(s.symbol, s.date) for s in sales] == [
            ("MSFT", "2025-03-01"),
            ("AAPL", "2025-02-01"),
            ("AAPL", "2025-01-15"),
        ]
        assert total_realized_pnl(sales) == Decimal("10") + Decimal("20") + Decimal("-50")

    def test_unparseable_dates_sort_last(self):
        def sell(date):
            return Transaction(
                type=TransactionType.SELL,
                shares=Decimal("1"),
                price=Decimal("1"),
                date=date,
                total_amount=Decimal("1"),
            )

        sales = collect_sales_history({"X": (sell("garbage"), sell("2024-06-01"))})

        assert [s.date for s in sales] == ["2024-06-01", "garbage"]
        assert total_realized_pnl(sales) == Decimal("0")


@pytest.mark.unit
class TestLifecycle:
    """Test suite for a position over its whole life."""

    def test_open_grow_sell_out_and_reopen(self):
        ledger = Ledger().add("AAPL", 100, 15000, "2025-01-02").ledger
        ledger = ledger.buy("AAPL", 50, 10000, "2025-01-10").ledger
        avg = ledger.position("AAPL").avg_price
        assert avg.quantize(Decimal("0.01")) == Decimal("166.67")

        result = ledger.sell("AAPL", 50, 9500, "2025-02-01")
        assert result.transaction.realized_gain_loss.quantize(Decimal("0.01")) == Decimal("1166.67")
        ledger = result.ledger
        assert ledger.position("AAPL").avg_price == avg
        assert ledger.position("AAPL").shares == Decimal("100")

        ledger = ledger.sell("AAPL", 100, 18000, "2025-03-01").ledger
        active, inactive = partition(ledger.positions)
        assert active == []
        assert [p.symbol for p in inactive] == ["AAPL"]

        result = ledger.add("AAPL", 25, 4500, "2025-04-01")
        assert result.ok
        position = result.ledger.position("AAPL")
        assert position.avg_price == Decimal("180")
        assert position.is_active

    @pytest.mark.parametrize(
        "buys",
        [
            [(5, 600), (20, 600), (3, 600)],
            [(20, 600), (3, 600), (5, 600)],
            [(3, 600), (5, 600), (20, 600)],
        ],
    )
    def test_average_ignores_order_of_equal_total_buys(self, buys):
        ledger = Ledger().add("AAPL", 10, 1000, "2025-01-02").ledger
        for shares, total in buys:
            ledger = ledger.buy("AAPL", shares, total, "2025-01-10").ledger

        position = ledger.position("AAPL")
        assert position.shares == Decimal("38")
        # (1000 + 3 * 600) / 38
        assert position.avg_price.quantize(Decimal("0.000001")) == Decimal("73.684211")
