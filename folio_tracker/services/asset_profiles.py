"""Company profiles for sector enrichment, and free-text asset search.

Profiles are looked up on Finnhub, then FMP, then Alpha Vantage; search uses
Finnhub, then FMP. As with quotes, a provider failing or having nothing only
costs its own tier, and every call waits on the provider's shared limiter.
"""

import logging
from dataclasses import replace
from typing import Iterable, Optional

from folio_tracker.models import AssetProfile, AssetRecord, SearchResult
from folio_tracker.services.providers import PROVIDER_ERRORS, ProviderSet

logger = logging.getLogger(__name__)


def apply_profile(record: AssetRecord, profile: AssetProfile) -> AssetRecord:
    """Registry entry updated with a profile's sector, currency and exchange."""
    return replace(
        record,
        sector=profile.sector,
        currency=(profile.currency or record.currency).upper(),
        stock_exchange=profile.exchange or record.stock_exchange,
    )


class AssetProfiler:
    """Tiered profile and search lookups over a set of provider adapters."""

    def __init__(self, providers: ProviderSet):
        self.providers = providers

    async def fetch_profile(self, symbol: str) -> Optional[AssetProfile]:
        """First profile with a sector, or None when no configured provider has one."""
        symbol = symbol.strip().upper()
        for provider in (self.providers.finnhub, self.providers.fmp, self.providers.alpha_vantage):
            if not provider.enabled:
                continue
            try:
                profile = await provider.fetch_profile(symbol)
            except PROVIDER_ERRORS as e:
                logger.info(f"{provider.name} profile failed for {symbol}: {e}")
                continue
            if profile is not None:
                return profile
        return None

    async def search(self, query: str) -> list[SearchResult]:
        """
        Instruments matching a ticker or company name.

        Returns:
            Results of the first provider that returned any; an empty list for
            a blank query or when nothing matched
        """
        query = query.strip()
        if not query:
            return []

        for provider in (self.providers.finnhub, self.providers.fmp):
            if not provider.enabled:
                continue
            try:
                results = await provider.search(query)
            except PROVIDER_ERRORS as e:
                logger.info(f"{provider.name} search failed for {query!r}: {e}")
                continue
            if results:
                return results
        return []

    async def enrich(self, records: Iterable[AssetRecord]) -> list[AssetRecord]:
        """
        Look up a profile for each record, one at a time.

        Returns:
            The records a profile was found for, updated from it
        """
        records = list(records)
        logger.info(f"Looking up sectors for {len(records)} asset(s)")
        enriched: list[AssetRecord] = []
        for record in records:
            profile = await self.fetch_profile(record.ticker)
            if profile is None:
                logger.info(f"{record.ticker}: no profile data found")
                continue
            logger.info(f"{record.ticker}: sector={profile.sector} ({profile.source})")
            enriched.append(apply_profile(record, profile))
        logger.info(f"Sector lookup resolved {len(enriched)}/{len(records)} asset(s)")
        return enriched
