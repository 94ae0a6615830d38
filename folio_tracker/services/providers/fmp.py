"""Financial Modeling Prep adapter: price tier 2, resolver tier 3, profiles and search."""

import logging
from decimal import Decimal
from typing import Any, Optional

from folio_tracker.lib.api_models import FMPIsinResult, FMPProfile, FMPQuoteShort, FMPSearchResult
from folio_tracker.lib.config import (
    FMP_BASE_URL,
    FMP_MIN_INTERVAL,
    MAX_RESOLUTION_CANDIDATES,
    MAX_SEARCH_RESULTS,
)
from folio_tracker.models import AssetProfile, PriceQuote, ResolutionCandidate, SearchResult
from folio_tracker.services.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)

SOURCE = "Financial Modeling Prep"


class FMPProvider(ProviderAdapter):
    """FMP stable API (free tier: 250 calls/day)."""

    name = SOURCE
    base_url = FMP_BASE_URL

    def __init__(self, api_key: str, **kwargs: Any) -> None:
        kwargs.setdefault("min_interval", FMP_MIN_INTERVAL)
        super().__init__(api_key, **kwargs)

    async def fetch_quote(self, symbol: str) -> Optional[PriceQuote]:
        """Current price from the first quote record, or None.

        An ``{"error": ...}`` payload (e.g. a symbol outside the plan) and an
        empty or zero-priced result both mean "not found here".
        """
        data = await self._get("/quote-short", {"symbol": symbol, "apikey": self.api_key})

        if isinstance(data, dict):
            error = data.get("error") or data.get("Error Message")
            if error:
                logger.info(f"FMP error for {symbol}: {error}")
            return None

        if not isinstance(data, list) or not data:
            return None

        record = FMPQuoteShort.model_validate(data[0])
        if record.price is not None and record.price > 0:
            return PriceQuote.hit(Decimal(str(record.price)), SOURCE, tier=2)
        return None

    async def lookup_isin(self, isin: str) -> list[ResolutionCandidate]:
        """Up to five listings for an ISIN from the dedicated search endpoint."""
        data = await self._get("/search-isin", {"isin": isin, "apikey": self.api_key})
        if not isinstance(data, list):
            return []

        candidates: list[ResolutionCandidate] = []
        for raw in data[:MAX_RESOLUTION_CANDIDATES]:
            result = FMPIsinResult.model_validate(raw)
            if not result.symbol:
                continue
            candidates.append(
                ResolutionCandidate(
                    ticker=result.symbol.upper(),
                    name=result.company_name or result.name or result.symbol,
                    exchange=result.exchange_short_name or result.exchange or "",
                    source=SOURCE,
                )
            )
        return candidates

    async def fetch_profile(self, symbol: str) -> Optional[AssetProfile]:
        """Sector and industry from the first profile record, or None."""
        data = await self._get("/profile", {"symbol": symbol, "apikey": self.api_key})
        if not isinstance(data, list) or not data:
            return None

        profile = FMPProfile.model_validate(data[0])
        if not profile.sector:
            return None
        return AssetProfile(
            sector=profile.sector,
            industry=profile.industry,
            currency=profile.currency,
            exchange=profile.exchange_short_name or profile.exchange,
            source=SOURCE,
        )

    async def search(self, query: str) -> list[SearchResult]:
        """Symbols matching a ticker or company name; FMP does not report the asset type."""
        data = await self._get(
            "/search-symbol",
            {"query": query, "limit": MAX_SEARCH_RESULTS, "apikey": self.api_key},
        )
        if not isinstance(data, list):
            return []

        results: list[SearchResult] = []
        for raw in data[:MAX_SEARCH_RESULTS]:
            result = FMPSearchResult.model_validate(raw)
            if result.symbol:
                results.append(
                    SearchResult(symbol=result.symbol, name=result.name or result.symbol)
                )
        return results
