"""Unit tests for PortfolioService use cases against the test database."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from folio_tracker.lib.errors import DataError, ImportAbortedError, MissingAPIKeyError
from folio_tracker.models import Position, Snapshot
from folio_tracker.services.currency_converter import CurrencyConverter
from folio_tracker.services.portfolio_service import PortfolioService, build_asset_record
from folio_tracker.services.price_fetcher import PriceFetcher
from folio_tracker.storage import SqlStorage


def finnhub_prices(prices):
    def respond(method, endpoint, params):
        return {"c": prices.get(params["symbol"], 0)}

    return respond


def finnhub_market(prices, industries):
    """Quotes plus profile2 industries, keyed by symbol."""

    def respond(method, endpoint, params):
        if endpoint == "/stock/profile2":
            industry = industries.get(params["symbol"])
            return {"finnhubIndustry": industry, "currency": "USD"} if industry else {}
        return {"c": prices.get(params["symbol"], 0)}

    return respond


def profile_lookups(provider):
    return [params["symbol"] for _, path, params in provider.calls if path == "/stock/profile2"]


@pytest.fixture
def converter(tmp_path):
    """EUR converter that never touches the network."""
    converter = CurrencyConverter("EUR", cache_path=tmp_path / "rates.json")
    converter.rates = {"USD": Decimal("0.9"), "EUR": Decimal("1")}
    converter.fetch_exchange_rates = AsyncMock(return_value=True)
    return converter


@pytest.fixture
def make_service(build_providers, converter, no_wait):
    """PortfolioService over the test database and canned providers."""

    def build(**handlers):
        providers = build_providers(**handlers)
        fetcher = PriceFetcher(
            providers, alternative_limiter=no_wait("alt"), batch_limiter=no_wait("batch")
        )
        return PortfolioService(
            SqlStorage(), providers=providers, fetcher=fetcher, converter=converter
        )

    return build


@pytest.mark.unit
class TestLedgerUseCases:
    """Test suite for add/buy/sell/remove through the service."""

    def test_add_position_persists(self, make_service):
        service = make_service()

        result = service.add_position(
            "aapl", Decimal("10"), Decimal("1500"), date="2025-01-10", name="Apple"
        )

        assert result.ok
        assert result.transaction.currency == "USD"
        assert result.transaction.exchange_rate == Decimal("0.9")

        reloaded = make_service()
        position = reloaded.ledger.position("AAPL")
        assert position.shares == Decimal("10")
        assert position.name == "Apple"
        assert len(reloaded.ledger.transactions_for("AAPL")) == 1
        assert "AAPL" in reloaded.store.registry

    def test_buy_and_sell(self, make_service):
        service = make_service()
        service.add_position("SAP.DE", Decimal("10"), Decimal("2000"), date="2025-01-10")

        service.buy("SAP.DE", Decimal("10"), Decimal("2400"), date="2025-01-20")
        result = service.sell("SAP.DE", Decimal("5"), Decimal("1250"), date="2025-02-01")

        assert result.transaction.currency == "EUR"
        assert result.transaction.realized_gain_loss == Decimal("150")

        reloaded = make_service()
        position = reloaded.ledger.position("SAP.DE")
        assert position.shares == Decimal("15")
        assert position.avg_price == Decimal("220")
        sales = reloaded.sales_history()
        assert [(s.symbol, s.date) for s in sales] == [("SAP.DE", "2025-02-01")]

    def test_failed_mutation_is_not_persisted(self, make_service):
        service = make_service()

        result = service.sell("AAPL", Decimal("1"), Decimal("100"), date="2025-01-10")

        assert result.error == "Position AAPL not found"
        assert make_service().ledger.positions == ()

    def test_remove_position(self, make_service):
        service = make_service()
        service.add_position("AAPL", Decimal("1"), Decimal("100"), date="2025-01-10")

        removed = service.remove_position("AAPL")

        assert removed.symbol == "AAPL"
        assert service.remove_position("AAPL") is None
        reloaded = make_service()
        assert reloaded.ledger.positions == ()
        assert reloaded.ledger.transactions_for("AAPL") == ()


@pytest.mark.unit
@pytest.mark.asyncio
class TestImportText:
    """Test suite for importing pasted holdings."""

    async def test_import_merges_and_persists(self, make_service):
        service = make_service()

        report = await service.import_text("Ticker;Shares;Price\nAAPL;10;150\nVWCE.DE;3;100")

        assert [p.symbol for p in report.positions] == ["AAPL", "VWCE.DE"]
        reloaded = make_service()
        assert reloaded.ledger.symbols == ["AAPL", "VWCE.DE"]
        assert "VWCE.DE" in reloaded.store.registry

    async def test_same_ticker_on_two_platforms(self, make_service):
        service = make_service()

        report = await service.import_text(
            "Ticker\tShares\tPrice\tPlatform\nAAPL\t10\t150\tIBKR\nAAPL\t5\t160\tLightyear"
        )

        assert len(report.positions) == 2
        assert not any("Already in portfolio" in w for w in report.warnings)
        reloaded = make_service()
        assert reloaded.ledger.symbols == ["AAPL"]
        assert reloaded.ledger.position("AAPL").platform == "Lightyear"
        assert "AAPL" in reloaded.store.registry

    async def test_import_nothing_raises(self, make_service):
        with pytest.raises(ImportAbortedError, match="No positions could be imported"):
            await make_service().import_text("Ticker;Shares\nAAPL;zero")

    async def test_replace_mode(self, make_service):
        service = make_service()
        await service.import_text("Ticker;Shares;Price\nAAPL;10;150")

        await service.import_text("Ticker;Shares;Price\nMSFT;1;300", replace=True)

        assert make_service().ledger.symbols == ["MSFT"]

    async def test_missing_prices_are_filled_from_market(self, make_service):
        service = make_service(finnhub=finnhub_prices({"NVDA": 120}))

        report = await service.import_text("Ticker;Shares\nNVDA;3\nZZZZ;1")

        nvda = service.ledger.position("NVDA")
        assert nvda.avg_price == Decimal("120")
        assert nvda.needs_current_price is False
        assert report.warnings[-1] == (
            "Could not determine price for: ZZZZ. Please update these positions manually."
        )
        assert len(service.store.snapshots) == 1

    async def test_missing_prices_without_keys(self, make_service):
        report = await make_service().import_text("Ticker;Shares\nNVDA;3")

        assert "No price API keys configured" in report.warnings[-1]


@pytest.mark.unit
@pytest.mark.asyncio
class TestPrices:
    """Test suite for price refreshes."""

    async def test_refresh_requires_keys(self, make_service):
        with pytest.raises(MissingAPIKeyError, match="FINNHUB_API_KEY"):
            await make_service().refresh_prices()

    async def test_refresh_prices_records_history_and_snapshot(self, make_service, converter):
        service = make_service(finnhub=finnhub_prices({"AAPL": 200}))
        service.add_position("AAPL", Decimal("10"), Decimal("1500"), date="2025-01-10")

        result = await service.refresh_prices()

        assert result.prices == {"AAPL": Decimal("200")}
        assert service.store.metadata["AAPL"].source == "Finnhub"
        converter.fetch_exchange_rates.assert_awaited_once()
        reloaded = make_service()
        assert reloaded.store.prices == {"AAPL": Decimal("200")}
        assert len(reloaded.store.snapshots) == 1
        assert reloaded.store.snapshots[0].total_market_value == Decimal("2000")

    async def test_refresh_single_price_uses_alternatives(self, make_service):
        service = make_service(finnhub=finnhub_prices({"SAP.DE": 230}))

        quote = await service.refresh_single_price("sap")

        assert quote.alternative_symbol == "SAP.DE"
        assert service.store.prices["SAP"] == Decimal("230")
        assert service.store.metadata["SAP"].success is True

    async def test_refresh_single_price_failure(self, make_service):
        service = make_service(finnhub=finnhub_prices({}))

        quote = await service.refresh_single_price("ZZZZ")

        assert not quote.success
        assert "ZZZZ" not in service.store.prices
        assert service.store.metadata["ZZZZ"].error == "Symbol not found in any API"


@pytest.mark.unit
@pytest.mark.asyncio
class TestAssets:
    """Test suite for sector enrichment, sector allocation and asset search."""

    async def test_refresh_learns_unknown_sectors(self, make_service):
        service = make_service(
            finnhub=finnhub_market({"NVDA": 120}, {"NVDA": "Semiconductors"})
        )
        service.add_position("NVDA", Decimal("2"), Decimal("200"), date="2025-01-10")
        service.add_position("ZZZZ", Decimal("1"), Decimal("10"), date="2025-01-10")

        await service.refresh_prices()

        assert profile_lookups(service.providers.finnhub) == ["NVDA", "ZZZZ"]
        assert service.sector_of("NVDA") == "Semiconductors"
        assert service.sector_of("ZZZZ") == "Other"
        assert make_service().store.registry.get("NVDA").sector == "Semiconductors"

        await service.refresh_prices()

        assert profile_lookups(service.providers.finnhub) == ["NVDA", "ZZZZ", "ZZZZ"]

    async def test_reimport_keeps_learned_sector(self, make_service):
        service = make_service(finnhub=finnhub_market({"NVDA": 120}, {"NVDA": "Semiconductors"}))
        service.add_position("NVDA", Decimal("2"), Decimal("200"), date="2025-01-10")
        await service.refresh_prices()

        await service.import_text("Ticker;Shares;Price\nNVDA;3;100")

        assert service.sector_of("NVDA") == "Semiconductors"
        assert make_service().store.registry.get("NVDA").sector == "Semiconductors"

    async def test_no_prices_no_profile_lookups(self, make_service):
        service = make_service(finnhub=finnhub_market({}, {"NVDA": "Semiconductors"}))
        service.add_position("NVDA", Decimal("2"), Decimal("200"), date="2025-01-10")

        await service.refresh_prices()

        assert profile_lookups(service.providers.finnhub) == []

    async def test_sector_allocation(self, make_service):
        service = make_service()
        service.add_position("AAPL", Decimal("1"), Decimal("300"), date="2025-01-10")
        service.add_position("MSFT", Decimal("1"), Decimal("100"), date="2025-01-10")
        service.add_position("ZZZZ", Decimal("1"), Decimal("100"), date="2025-01-10")

        allocations = service.sector_allocation()

        assert [(a.sector, a.value) for a in allocations] == [
            ("Technology", Decimal("400")),
            ("Other", Decimal("100")),
        ]
        assert allocations[0].weight == Decimal("80")

    async def test_search_assets(self, make_service):
        def search(method, endpoint, params):
            return {"count": 1, "result": [{"symbol": "AAPL", "description": "APPLE INC"}]}

        results = await make_service(finnhub=search).search_assets("apple")

        assert [(r.symbol, r.name) for r in results] == [("AAPL", "APPLE INC")]

    async def test_search_requires_keys(self, make_service):
        with pytest.raises(MissingAPIKeyError, match="Asset search"):
            await make_service(alpha_vantage=lambda *args: {}).search_assets("apple")


@pytest.mark.unit
class TestSnapshotsAndReports:
    """Test suite for snapshot history and read-side views."""

    def test_save_snapshot_requires_positions(self, make_service):
        with pytest.raises(DataError, match="No portfolio to save"):
            make_service().save_snapshot()

    def test_snapshot_lifecycle(self, make_service):
        service = make_service()
        service.add_position("AAPL", Decimal("2"), Decimal("300"), date="2025-01-10")

        snapshot = service.save_snapshot("2025-01-10T00:00:00")

        assert snapshot.total_invested == Decimal("300")
        assert service.delete_snapshot("2025-01-10T00:00:00") is True
        assert service.delete_snapshot("2025-01-10T00:00:00") is False
        service.save_snapshot("2025-01-11T00:00:00")
        assert service.clear_snapshots() == 1
        assert make_service().store.snapshots == []

    def test_sync_history_keeps_local_on_collision(self, make_service):
        service = make_service()
        service.add_position("AAPL", Decimal("1"), Decimal("100"), date="2025-01-10")
        local = service.save_snapshot("2025-01-02T00:00:00")
        incoming = [
            Snapshot("2025-01-02T00:00:00", Decimal("1"), Decimal("1"), 1, 1),
            Snapshot("2025-01-01T00:00:00", Decimal("50"), Decimal("60"), 1, 1),
        ]

        merged = service.sync_history(incoming)

        assert [s.timestamp for s in merged] == ["2025-01-01T00:00:00", "2025-01-02T00:00:00"]
        assert merged[1] == local
        stored = make_service().store.snapshots
        assert [s.total_invested for s in stored] == [Decimal("50"), Decimal("100")]

    def test_totals_and_base_currency_value(self, make_service):
        service = make_service()
        service.add_position("AAPL", Decimal("10"), Decimal("1000"), date="2025-01-10")
        service.add_position("SAP.DE", Decimal("1"), Decimal("200"), date="2025-01-10")
        service.store.prices["AAPL"] = Decimal("120")

        totals = service.totals()

        assert totals.total_invested == Decimal("1200")
        assert totals.total_market_value == Decimal("1400")
        # 1200 USD at 0.9 + 200 EUR
        assert service.base_currency_value() == Decimal("1280")

    def test_advisory_summary(self, make_service):
        service = make_service()
        service.add_position("AAPL", Decimal("2"), Decimal("200"), date="2025-01-10")
        service.add_position("MSFT", Decimal("1"), Decimal("300"), date="2025-01-10")
        service.sell("MSFT", Decimal("1"), Decimal("350"), date="2025-01-20")
        service.store.prices["AAPL"] = Decimal("110")

        summary = service.advisory_summary()

        assert [p["symbol"] for p in summary.positions] == ["AAPL"]
        assert summary.positions[0]["current_price"] == Decimal("110")
        assert summary.realized_pnl == Decimal("50")
        assert summary.sales_count == 1


@pytest.mark.unit
def test_build_asset_record():
    position = Position(
        "MC.PA", Decimal("1"), Decimal("700"), name="LVMH", resolved_from="FR0000121014"
    )

    record = build_asset_record(position)

    assert record.isin == "FR0000121014"
    assert record.stock_exchange == "Paris"
    assert record.currency == "EUR"
    assert build_asset_record(Position("X", Decimal("1"), Decimal("1"))).isin is None
