"""Alpha Vantage adapter: price tier 3 and company overviews."""

import logging
from decimal import Decimal
from typing import Any, Optional

from folio_tracker.lib.api_models import AlphaVantageOverview, AlphaVantageQuoteResponse
from folio_tracker.lib.config import (
    ALPHA_VANTAGE_MIN_INTERVAL,
    ALPHA_VANTAGE_RATE_LIMIT_ERROR,
    ALPHA_VANTAGE_URL,
)
from folio_tracker.models import AssetProfile, PriceQuote
from folio_tracker.services.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)

SOURCE = "Alpha Vantage"


class AlphaVantageProvider(ProviderAdapter):
    """Alpha Vantage GLOBAL_QUOTE (free tier: 5 calls/min)."""

    name = SOURCE

    def __init__(self, api_key: str, **kwargs: Any) -> None:
        kwargs.setdefault("min_interval", ALPHA_VANTAGE_MIN_INTERVAL)
        super().__init__(api_key, **kwargs)

    async def fetch_quote(self, symbol: str) -> Optional[PriceQuote]:
        """Current price, a rate-limit failure, or None when not found.

        Alpha Vantage signals throttling with a 200 response carrying a
        ``Note`` or ``Information`` message. That outcome is returned as a
        failed quote so the caller stops instead of treating it as unknown.
        """
        data = await self._get(
            ALPHA_VANTAGE_URL,
            {"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self.api_key},
        )
        response = AlphaVantageQuoteResponse.model_validate(data or {})

        if response.is_rate_limited:
            logger.warning(f"Alpha Vantage rate limited while fetching {symbol}")
            return PriceQuote.miss(SOURCE, ALPHA_VANTAGE_RATE_LIMIT_ERROR, tier=3)

        if response.error_message:
            logger.info(f"Alpha Vantage error for {symbol}: {response.error_message}")
            return None

        quote = response.global_quote
        if quote is not None and quote.price is not None and quote.price > 0:
            return PriceQuote.hit(Decimal(str(quote.price)), SOURCE, tier=3)
        return None

    async def fetch_profile(self, symbol: str) -> Optional[AssetProfile]:
        """Sector from OVERVIEW; None when unknown or throttled."""
        data = await self._get(
            ALPHA_VANTAGE_URL,
            {"function": "OVERVIEW", "symbol": symbol, "apikey": self.api_key},
        )
        overview = AlphaVantageOverview.model_validate(data or {})
        if overview.is_rate_limited:
            logger.warning(f"Alpha Vantage rate limited while fetching profile for {symbol}")
            return None
        if not overview.sector:
            return None
        return AssetProfile(
            sector=overview.sector,
            industry=overview.industry,
            currency=overview.currency,
            exchange=overview.exchange,
            source=SOURCE,
        )
