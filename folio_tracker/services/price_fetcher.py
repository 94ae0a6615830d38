"""Fetch current prices through the Finnhub -> FMP -> Alpha Vantage fallback chain.

Each tier is tried only after the previous one missed. When a symbol misses
on every configured tier, alternative spellings (regional exchange suffixes,
curated name mappings, the first word of the company name) are tried one by
one. Batch refresh processes symbols strictly in sequence, spaced by the
delay of the fastest configured provider, and never aborts on a single
failure.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional

from folio_tracker.lib.config import ALTERNATIVE_SYMBOL_DELAY, ProviderKeys, calculate_rate_delay
from folio_tracker.lib.exchanges import REGIONAL_SUFFIXES
from folio_tracker.lib.rate_limiter import RateLimiter
from folio_tracker.models import Position, PriceMetadata, PriceQuote
from folio_tracker.services.providers import PROVIDER_ERRORS, ProviderSet

logger = logging.getLogger(__name__)

NO_KEYS_QUOTE = PriceQuote.miss("No API keys", "Configure API keys")
ALL_FAILED_QUOTE = PriceQuote.miss("All APIs failed", "Symbol not found in any API")

# Instruments whose conventional tickers differ from their common names.
# Only the first key found in the name is used.
NAME_TICKER_MAPPINGS: dict[str, tuple[str, ...]] = {
    "cellnex": ("CLNX", "CLNX.MC"),
    "covestro": ("1COV.DE", "COV.DE"),
    "prosus": ("PRX.AS", "PROSUS"),
    "adyen": ("ADYEN.AS", "ADYEY"),
    "just eat": ("JET.L", "TKWY.AS"),
    "moncler": ("MONC.MI", "MONRF"),
    "sartorius": ("SRT.DE", "SRT3.DE"),
    "nestle": ("NESN.SW", "NSRGY"),
    "roche": ("ROG.SW", "RHHBY"),
    "novartis": ("NOVN.SW", "NVS"),
    "asml": ("ASML.AS", "ASML"),
    "lvmh": ("MC.PA", "LVMUY"),
    "hermes": ("RMS.PA", "HESAY"),
    "schneider": ("SU.PA", "SBGSF"),
    "totalenergies": ("TTE.PA", "TTE"),
    "airbus": ("AIR.PA", "EADSY"),
}

_COMPANY_FORM = re.compile(r"\s+(SA|NV|AG|SE|PLC|INC|CORP|LTD|SPA|ASA|OYJ)\b", re.IGNORECASE)


def build_alternative_symbols(symbol: str, name: Optional[str] = None) -> list[str]:
    """
    Alternative spellings to try when a symbol is not found anywhere.

    Args:
        symbol: The symbol that failed
        name: Instrument name, used for curated mappings and the first-word guess

    Returns:
        Deduplicated candidates in trial order, never including ``symbol`` itself

    Examples:
        >>> build_alternative_symbols("MC.PA")
        ['MC']
        >>> build_alternative_symbols("LVMH", "LVMH Moet Hennessy")[:2]
        ['LVMH.PA', 'LVMH.L']
    """
    symbol = symbol.strip().upper()
    alternatives: list[str] = []

    if "." in symbol:
        alternatives.append(symbol.split(".")[0])
    else:
        alternatives.extend(f"{symbol}{suffix}" for suffix in REGIONAL_SUFFIXES)

    if name and name.strip().upper() != symbol:
        lowered = name.lower()
        for key, tickers in NAME_TICKER_MAPPINGS.items():
            if key in lowered:
                alternatives.extend(tickers)
                break

        base_name = _COMPANY_FORM.split(name, maxsplit=1)[0].strip()
        if base_name:
            first_word = base_name.split()[0].upper()
            if 3 <= len(first_word) <= 6:
                alternatives.append(first_word)

    return [alt for alt in dict.fromkeys(alternatives) if alt and alt != symbol]


@dataclass
class BatchRefreshResult:
    """Outcome of refreshing every symbol in the portfolio."""

    prices: dict[str, Decimal] = field(default_factory=dict)
    metadata: dict[str, PriceMetadata] = field(default_factory=dict)
    quotes: dict[str, PriceQuote] = field(default_factory=dict)
    delay: float = 0.0
    description: str = ""

    @property
    def succeeded(self) -> list[str]:
        return [symbol for symbol, meta in self.metadata.items() if meta.success]

    @property
    def failed(self) -> list[str]:
        return [symbol for symbol, meta in self.metadata.items() if not meta.success]


class PriceFetcher:
    """Tiered quote lookups over a set of provider adapters."""

    def __init__(
        self,
        providers: ProviderSet,
        alternative_limiter: Optional[RateLimiter] = None,
        batch_limiter: Optional[RateLimiter] = None,
    ):
        """Initialize fetcher.

        Args:
            providers: Provider adapters; those without a key are skipped
            alternative_limiter: Spacing between alternative-symbol attempts
            batch_limiter: Spacing between symbols in a batch refresh
                (defaults to the delay of the fastest configured provider)
        """
        self.providers = providers
        self.alternative_limiter = alternative_limiter or RateLimiter(
            "alternative-symbols", ALTERNATIVE_SYMBOL_DELAY
        )
        delay, description = calculate_rate_delay(providers.keys)
        self.batch_limiter = batch_limiter or RateLimiter("batch-refresh", delay)
        self.rate_description = description

    @property
    def keys(self) -> ProviderKeys:
        return self.providers.keys

    async def fetch_price(self, symbol: str) -> PriceQuote:
        """
        Current price for one symbol, walking the configured tiers in order.

        Returns:
            The first successful quote; the Alpha Vantage rate-limit failure
            as soon as it happens; otherwise a "not found" or "no keys" failure
        """
        if not self.keys.has_price_provider:
            return NO_KEYS_QUOTE

        symbol = symbol.strip().upper()
        for provider in (self.providers.finnhub, self.providers.fmp, self.providers.alpha_vantage):
            if not provider.enabled:
                continue
            try:
                quote = await provider.fetch_quote(symbol)
            except PROVIDER_ERRORS as e:
                logger.info(f"{provider.name} failed for {symbol}: {e}")
                continue
            if quote is not None:
                if quote.success:
                    logger.debug(f"{symbol}: {quote.price} from {quote.source} (tier {quote.tier})")
                return quote

        logger.info(f"{symbol}: not found in any configured API")
        return ALL_FAILED_QUOTE

    async def try_alternative_symbols(
        self, symbol: str, name: Optional[str] = None
    ) -> Optional[PriceQuote]:
        """
        Try alternative spellings of a symbol until one has a price.

        Returns:
            The first successful quote, tagged with the alternative and original
            symbols, or None when every alternative failed
        """
        for alternative in build_alternative_symbols(symbol, name):
            await self.alternative_limiter.acquire()
            quote = await self.fetch_price(alternative)
            if quote.success:
                logger.info(f"{symbol}: found price under alternative symbol {alternative}")
                return quote.as_alternative(alternative, symbol)
        return None

    async def refresh_prices(self, positions: Iterable[Position]) -> BatchRefreshResult:
        """
        Fetch prices for every distinct symbol, one at a time.

        A symbol that misses on all tiers is retried under alternative
        spellings derived from the position's name. Failures are recorded in
        the metadata and never stop the batch.
        """
        names: dict[str, str] = {}
        for position in positions:
            names.setdefault(position.symbol, position.name)

        result = BatchRefreshResult(
            delay=self.batch_limiter.interval, description=self.rate_description
        )
        logger.info(f"Refreshing {len(names)} symbol(s): {self.rate_description}")

        for symbol, name in names.items():
            await self.batch_limiter.acquire()
            quote = await self.fetch_price(symbol)
            source = quote.source

            if not quote.success and self.keys.has_price_provider:
                alternative = await self.try_alternative_symbols(symbol, name)
                if alternative is not None:
                    quote = alternative
                    source = f"{alternative.source} (as {alternative.alternative_symbol})"

            result.quotes[symbol] = quote
            result.metadata[symbol] = PriceMetadata(
                timestamp=datetime.now(timezone.utc).isoformat(),
                source=source,
                success=quote.success,
                error=quote.error,
            )
            if quote.success and quote.price is not None:
                result.prices[symbol] = quote.price
            else:
                logger.warning(f"No price for {symbol}: {quote.error}")

        logger.info(
            f"Price refresh done: {len(result.succeeded)} succeeded, {len(result.failed)} failed"
        )
        return result

