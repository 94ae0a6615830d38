"""Finnhub adapter: price tier 1, resolver tier 2, profiles and search."""

import logging
from decimal import Decimal
from typing import Any, Optional

from folio_tracker.lib.api_models import FinnhubProfile, FinnhubQuote, FinnhubSearchResponse
from folio_tracker.lib.config import (
    FINNHUB_BASE_URL,
    FINNHUB_MIN_INTERVAL,
    MAX_RESOLUTION_CANDIDATES,
    MAX_SEARCH_RESULTS,
)
from folio_tracker.lib.validators import normalize_asset_type
from folio_tracker.models import AssetProfile, PriceQuote, ResolutionCandidate, SearchResult
from folio_tracker.services.providers.base import PROVIDER_ERRORS, ProviderAdapter

logger = logging.getLogger(__name__)

SOURCE = "Finnhub"


class FinnhubProvider(ProviderAdapter):
    """Finnhub REST API (free tier: 60 calls/min)."""

    name = SOURCE
    base_url = FINNHUB_BASE_URL

    def __init__(self, api_key: str, **kwargs: Any) -> None:
        kwargs.setdefault("min_interval", FINNHUB_MIN_INTERVAL)
        super().__init__(api_key, **kwargs)

    async def fetch_quote(self, symbol: str) -> Optional[PriceQuote]:
        """Current price, or None when Finnhub has no positive quote for the symbol.

        Finnhub answers unknown symbols with ``c == 0`` rather than an error.
        """
        data = await self._get("/quote", {"symbol": symbol, "token": self.api_key})
        quote = FinnhubQuote.model_validate(data or {})
        if quote.current is not None and quote.current > 0:
            return PriceQuote.hit(Decimal(str(quote.current)), SOURCE, tier=1)
        return None

    async def lookup_isin(self, isin: str) -> list[ResolutionCandidate]:
        """Tickers for an ISIN from the profile endpoint plus free-text search.

        Each endpoint failing only loses its own candidates.
        """
        candidates: list[ResolutionCandidate] = []

        try:
            data = await self._get("/stock/profile2", {"isin": isin, "token": self.api_key})
            profile = FinnhubProfile.model_validate(data or {})
            if profile.ticker:
                candidates.append(
                    ResolutionCandidate(
                        ticker=profile.ticker.upper(),
                        name=profile.name or profile.ticker,
                        exchange=profile.exchange or "",
                        source=SOURCE,
                    )
                )
        except PROVIDER_ERRORS as e:
            logger.info(f"Finnhub profile2 failed for {isin}: {e}")

        try:
            data = await self._get("/search", {"q": isin, "token": self.api_key})
            search = FinnhubSearchResponse.model_validate(data or {})
            for result in search.result[:MAX_RESOLUTION_CANDIDATES]:
                ticker = result.symbol.upper()
                if any(c.ticker == ticker for c in candidates):
                    continue
                candidates.append(
                    ResolutionCandidate(
                        ticker=ticker,
                        name=result.description or result.symbol,
                        asset_type=normalize_asset_type(result.type),
                        source=SOURCE,
                    )
                )
        except PROVIDER_ERRORS as e:
            logger.info(f"Finnhub search failed for {isin}: {e}")

        return candidates

    async def fetch_profile(self, symbol: str) -> Optional[AssetProfile]:
        """Industry classification from profile2; None when Finnhub has none."""
        data = await self._get("/stock/profile2", {"symbol": symbol, "token": self.api_key})
        profile = FinnhubProfile.model_validate(data or {})
        if not profile.finnhub_industry:
            return None
        return AssetProfile(
            sector=profile.finnhub_industry,
            industry=profile.finnhub_industry,
            currency=profile.currency,
            exchange=profile.exchange,
            source=SOURCE,
        )

    async def search(self, query: str) -> list[SearchResult]:
        data = await self._get("/search", {"q": query, "token": self.api_key})
        search = FinnhubSearchResponse.model_validate(data or {})
        return [
            SearchResult(
                symbol=result.symbol,
                name=result.description or result.symbol,
                asset_type=normalize_asset_type(result.type),
            )
            for result in search.result[:MAX_SEARCH_RESULTS]
        ]
