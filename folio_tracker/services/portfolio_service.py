"""
Portfolio service: the application state and every use case the CLI exposes.

State lives in an explicit ``PortfolioStore`` loaded from storage, instead of
module-level globals. Each use case updates the store and writes the changed
parts back through the ``PortfolioStorage`` protocol.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Optional

from folio_tracker.lib.config import (
    PRICE_PROVIDER_ENV_VARS,
    SEARCH_PROVIDER_ENV_VARS,
    ProviderKeys,
)
from folio_tracker.lib.errors import DataError, ImportAbortedError, MissingAPIKeyError
from folio_tracker.lib.exchanges import detect_currency, detect_stock_exchange
from folio_tracker.lib.sectors import OTHER_SECTOR, is_known_sector, lookup_sector
from folio_tracker.lib.validators import is_isin, validate_date
from folio_tracker.models import (
    AssetRecord,
    Position,
    PriceMetadata,
    PriceQuote,
    PriceRecord,
    SaleRecord,
    SearchResult,
    Snapshot,
)
from folio_tracker.services.asset_profiles import AssetProfiler
from folio_tracker.services.currency_converter import CurrencyConverter
from folio_tracker.services.identifier_resolver import (
    AssetRegistry,
    DecisionCallback,
    IdentifierResolver,
)
from folio_tracker.services.import_service import ImportReport, ImportService, ImportStatus
from folio_tracker.services.ledger import (
    Ledger,
    LedgerResult,
    collect_sales_history,
    total_realized_pnl,
)
from folio_tracker.services.portfolio_metrics import (
    PortfolioTotals,
    SectorAllocation,
    aggregate_by_sector,
    calculate_portfolio_totals,
)
from folio_tracker.services.price_fetcher import BatchRefreshResult, PriceFetcher
from folio_tracker.services.providers import ProviderSet
from folio_tracker.services.snapshot_aggregator import build_snapshot, merge_snapshots
from folio_tracker.storage.base import PortfolioStorage

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_asset_record(position: Position) -> AssetRecord:
    """Registry entry for a held position; exchange and currency come from its suffix."""
    ticker = position.symbol.upper()
    isin = position.resolved_from if is_isin(position.resolved_from) else None
    return AssetRecord(
        ticker=ticker,
        name=position.name or ticker,
        asset_type=position.asset_type or "Stock",
        isin=isin,
        stock_exchange=detect_stock_exchange(ticker),
        sector=OTHER_SECTOR,
        currency=detect_currency(ticker),
    )


@dataclass
class PortfolioStore:
    """Everything the application knows about the portfolio in this session."""

    ledger: Ledger = field(default_factory=Ledger)
    prices: dict[str, Decimal] = field(default_factory=dict)
    metadata: dict[str, PriceMetadata] = field(default_factory=dict)
    snapshots: list[Snapshot] = field(default_factory=list)
    registry: AssetRegistry = field(default_factory=AssetRegistry)

    @classmethod
    def load(cls, storage: PortfolioStorage) -> "PortfolioStore":
        ledger = Ledger.from_state(storage.load_positions(), storage.load_transactions())
        store = cls(
            ledger=ledger,
            prices=storage.load_latest_prices(),
            snapshots=storage.load_snapshots(),
            registry=AssetRegistry(storage.load_assets()),
        )
        logger.debug(
            f"Loaded {len(ledger.positions)} position(s), {len(store.prices)} price(s), "
            f"{len(store.snapshots)} snapshot(s), {len(store.registry)} asset(s)"
        )
        return store


@dataclass
class AdvisorySummary:
    """Read-only view of the portfolio handed to advisory consumers."""

    positions: list[dict[str, Any]]
    realized_pnl: Decimal
    sales_count: int


class PortfolioService:
    """Use cases over a PortfolioStore and its backing storage."""

    def __init__(
        self,
        storage: PortfolioStorage,
        keys: Optional[ProviderKeys] = None,
        providers: Optional[ProviderSet] = None,
        fetcher: Optional[PriceFetcher] = None,
        converter: Optional[CurrencyConverter] = None,
        profiler: Optional[AssetProfiler] = None,
    ):
        """Initialize service and load state.

        Args:
            storage: Persistence backend
            keys: Provider API keys (read from the environment if omitted)
            providers: Provider adapters (built from keys if omitted)
            fetcher: Price fetcher (built from providers if omitted)
            converter: Currency converter (uses cached rates until refreshed)
            profiler: Profile and search lookups (built from providers if omitted)
        """
        self.storage = storage
        self.providers = providers or ProviderSet.from_keys(keys or ProviderKeys.from_env())
        self.fetcher = fetcher or PriceFetcher(self.providers)
        self.converter = converter or CurrencyConverter()
        self.profiler = profiler or AssetProfiler(self.providers)
        self.converter.load_cached_rates()
        self.store = PortfolioStore.load(storage)
        self.resolver = IdentifierResolver(self.providers, self.store.registry, storage)

    @property
    def ledger(self) -> Ledger:
        return self.store.ledger

    @property
    def keys(self) -> ProviderKeys:
        return self.providers.keys

    def _save_assets(self, records: Iterable[AssetRecord]) -> None:
        self.storage.save_assets([self.store.registry.remember(r) for r in records])

    # Import

    async def import_text(
        self,
        text: str,
        replace: bool = False,
        decide: Optional[DecisionCallback] = None,
    ) -> ImportReport:
        """
        Import holdings from pasted text.

        Args:
            text: Tabular text with at least a symbol/ISIN and a quantity column
            replace: Replace the whole portfolio instead of merging into it
            decide: Disambiguation callback for ambiguous identifiers

        Returns:
            Report of imported positions, errors and warnings

        Raises:
            ImportAbortedError: Nothing could be imported
        """
        service = ImportService(self.resolver)
        report = await service.prepare(text, decide, known_tickers=self.ledger.symbols)
        if report.status == ImportStatus.NOTHING_IMPORTED:
            raise ImportAbortedError(report.errors)

        ledger, warnings = self.ledger.import_positions(report.positions, replace=replace)
        report.warnings.extend(warnings)
        self.store.ledger = ledger
        self.storage.save_positions(ledger.positions)
        # Last row per ticker, as in the ledger
        imported = {p.symbol: p for p in report.positions}
        self._save_assets(build_asset_record(p) for p in imported.values())
        logger.info(
            f"Imported {len(report.positions)} position(s) "
            f"({'replace' if replace else 'add'} mode, status {report.status.value})"
        )

        if report.needs_price_lookup:
            if self.keys.has_price_provider:
                await self.refresh_prices()
                unfilled = [
                    p.symbol for p in self.ledger.positions
                    if p.symbol in report.needs_price_lookup and p.avg_price <= 0
                ]
                if unfilled:
                    report.warnings.append(
                        f"Could not determine price for: {', '.join(unfilled)}. "
                        "Please update these positions manually."
                    )
            else:
                report.warnings.append(
                    "No price API keys configured; positions without an acquisition "
                    "price keep a zero cost basis until prices are refreshed."
                )
        return report

    # Ledger

    def _transaction_date(self, value: Optional[str]) -> str:
        return validate_date(value)

    def _commit(self, result: LedgerResult, symbol: str) -> LedgerResult:
        if result.ok:
            self.store.ledger = result.ledger
            symbol = symbol.strip().upper()
            self.storage.save_positions(result.ledger.positions)
            self.storage.save_transactions({symbol: result.ledger.transactions_for(symbol)})
        return result

    def add_position(
        self,
        symbol: str,
        shares: Decimal,
        total_amount: Decimal,
        date: Optional[str] = None,
        name: Optional[str] = None,
        asset_type: Optional[str] = None,
        platform: Optional[str] = None,
    ) -> LedgerResult:
        tx_date = self._transaction_date(date)
        currency = detect_currency(symbol)
        result = self.ledger.add(
            symbol,
            shares,
            total_amount,
            tx_date,
            name=name,
            asset_type=asset_type,
            platform=platform,
            currency=currency,
            exchange_rate=self.converter.get_exchange_rate(currency),
        )
        self._commit(result, symbol)
        if result.ok:
            position = result.ledger.position(symbol)
            if position is not None:
                self._save_assets([build_asset_record(position)])
        return result

    def buy(
        self, symbol: str, shares: Decimal, total_amount: Decimal, date: Optional[str] = None
    ) -> LedgerResult:
        currency = detect_currency(symbol)
        result = self.ledger.buy(
            symbol,
            shares,
            total_amount,
            self._transaction_date(date),
            currency=currency,
            exchange_rate=self.converter.get_exchange_rate(currency),
        )
        return self._commit(result, symbol)

    def sell(
        self, symbol: str, shares: Decimal, total_amount: Decimal, date: Optional[str] = None
    ) -> LedgerResult:
        currency = detect_currency(symbol)
        result = self.ledger.sell(
            symbol,
            shares,
            total_amount,
            self._transaction_date(date),
            currency=currency,
            exchange_rate=self.converter.get_exchange_rate(currency),
        )
        return self._commit(result, symbol)

    def remove_position(self, symbol: str) -> Optional[Position]:
        """Delete a position and its transaction history; None if it does not exist."""
        ledger, removed = self.ledger.remove(symbol)
        if removed is None:
            return None
        self.store.ledger = ledger
        self.storage.save_positions(ledger.positions)
        self.storage.delete_transactions_for_symbol(removed.symbol)
        return removed

    def sales_history(self) -> list[SaleRecord]:
        return collect_sales_history(self.ledger.transactions)

    # Prices

    def _require_price_keys(self) -> None:
        if not self.keys.has_price_provider:
            raise MissingAPIKeyError("Price provider", PRICE_PROVIDER_ENV_VARS)

    def _record_prices(self, quotes: dict[str, PriceQuote]) -> None:
        fetched_at = _now()
        records = [
            PriceRecord(
                ticker=symbol,
                price=quote.price,
                currency=detect_currency(symbol),
                source=quote.source,
                fetched_at=fetched_at,
            )
            for symbol, quote in quotes.items()
            if quote.success and quote.price is not None
        ]
        if records:
            self.storage.save_price_history(records)

    async def refresh_prices(self) -> BatchRefreshResult:
        """
        Fetch prices for every position, then save price history and a snapshot.

        Positions imported without a cost basis take the fetched price. When any
        price was found, held instruments without a known sector are looked up.

        Raises:
            MissingAPIKeyError: No price provider key configured
        """
        self._require_price_keys()
        positions = self.ledger.positions
        result = await self.fetcher.refresh_prices(positions)

        self.store.prices.update(result.prices)
        self.store.metadata.update(result.metadata)
        self._record_prices(result.quotes)

        ledger, filled, _ = self.ledger.fill_missing_cost_basis(self.store.prices)
        if filled:
            logger.info(f"Set cost basis from market price for: {', '.join(filled)}")
            self.store.ledger = ledger
            self.storage.save_positions(ledger.positions)

        if result.succeeded:
            await self.enrich_sectors()

        await self.converter.fetch_exchange_rates(detect_currency(p.symbol) for p in positions)

        if positions:
            self.save_snapshot()
        return result

    async def refresh_single_price(self, symbol: str) -> PriceQuote:
        """Fetch one symbol, trying alternative spellings when every tier misses."""
        self._require_price_keys()
        symbol = symbol.strip().upper()
        quote = await self.fetcher.fetch_price(symbol)
        if not quote.success:
            position = self.ledger.position(symbol)
            alternative = await self.fetcher.try_alternative_symbols(
                symbol, position.name if position else None
            )
            if alternative is not None:
                quote = alternative

        if quote.success and quote.price is not None:
            self.store.prices[symbol] = quote.price
            self._record_prices({symbol: quote})
        self.store.metadata[symbol] = PriceMetadata(
            timestamp=_now(), source=quote.source, success=quote.success, error=quote.error
        )
        return quote

    # Assets

    async def enrich_sectors(self) -> list[str]:
        """
        Look up sectors for held instruments the registry still files under "Other".

        Returns:
            Tickers whose sector was learned
        """
        unknown = []
        for symbol in self.ledger.symbols:
            record = self.store.registry.get(symbol)
            if record is not None and not is_known_sector(record.sector):
                unknown.append(record)
        if not unknown:
            return []

        enriched = await self.profiler.enrich(unknown)
        if enriched:
            self._save_assets(enriched)
        return [record.ticker for record in enriched]

    async def search_assets(self, query: str) -> list[SearchResult]:
        """
        Instruments matching a ticker or company name.

        Raises:
            MissingAPIKeyError: Neither Finnhub nor FMP is configured
        """
        if not (self.keys.finnhub or self.keys.fmp):
            raise MissingAPIKeyError("Asset search", SEARCH_PROVIDER_ENV_VARS)
        return await self.profiler.search(query)

    def sector_of(self, symbol: str) -> str:
        record = self.store.registry.get(symbol)
        return lookup_sector(symbol, record.sector if record else None)

    def sector_allocation(self) -> list[SectorAllocation]:
        """Market value per sector, largest first."""
        allocations, _ = aggregate_by_sector(
            self.ledger.positions, self.store.prices, self.sector_of
        )
        return allocations

    # Snapshots

    def save_snapshot(self, timestamp: Optional[str] = None) -> Snapshot:
        """
        Save the current portfolio totals as a snapshot.

        Raises:
            DataError: The portfolio is empty
        """
        if not self.ledger.positions:
            raise DataError("No portfolio to save. Import your portfolio first.")
        snapshot = build_snapshot(self.ledger.positions, self.store.prices, timestamp)
        self.storage.save_snapshot(snapshot)
        self.store.snapshots = merge_snapshots(self.store.snapshots, [snapshot])
        logger.info(f"Saved snapshot {snapshot.timestamp}")
        return snapshot

    def delete_snapshot(self, timestamp: str) -> bool:
        deleted = self.storage.delete_snapshot(timestamp)
        if deleted:
            self.store.snapshots = [s for s in self.store.snapshots if s.timestamp != timestamp]
        return deleted

    def clear_snapshots(self) -> int:
        count = self.storage.clear_snapshots()
        self.store.snapshots = []
        return count

    def sync_history(self, incoming: Iterable[Snapshot]) -> list[Snapshot]:
        """
        Merge snapshots from another store into local history.

        Local snapshots win on timestamp collisions; only snapshots new to this
        store are written.
        """
        known = {s.timestamp for s in self.store.snapshots}
        merged = merge_snapshots(self.store.snapshots, incoming)
        for snapshot in merged:
            if snapshot.timestamp not in known:
                self.storage.save_snapshot(snapshot)
        self.store.snapshots = merged
        return merged

    # Read side

    def totals(self) -> PortfolioTotals:
        return calculate_portfolio_totals(self.ledger.positions, self.store.prices)

    def base_currency_value(self) -> Decimal:
        """Market value of all positions converted to the base currency."""
        total = Decimal("0")
        for position in self.ledger.positions:
            price = self.store.prices.get(position.symbol)
            value = position.shares * price if price else position.cost_basis
            total += self.converter.to_base_currency(value, detect_currency(position.symbol))
        return total

    def advisory_summary(self) -> AdvisorySummary:
        sales = self.sales_history()
        positions = [
            {
                "symbol": p.symbol,
                "shares": p.shares,
                "avg_price": p.avg_price,
                "current_price": self.store.prices.get(p.symbol),
            }
            for p in self.ledger.positions
            if p.is_active
        ]
        return AdvisorySummary(
            positions=positions,
            realized_pnl=total_realized_pnl(sales),
            sales_count=len(sales),
        )
