"""Provider adapters converting external payloads to canonical shapes."""

from folio_tracker.lib.config import ProviderKeys
from folio_tracker.services.providers.alpha_vantage import AlphaVantageProvider
from folio_tracker.services.providers.anthropic import AnthropicResolver
from folio_tracker.services.providers.base import PROVIDER_ERRORS, ProviderAdapter
from folio_tracker.services.providers.finnhub import FinnhubProvider
from folio_tracker.services.providers.fmp import FMPProvider


class ProviderSet:
    """One adapter per provider, so each keeps a single shared rate limiter."""

    def __init__(
        self,
        finnhub: FinnhubProvider,
        fmp: FMPProvider,
        alpha_vantage: AlphaVantageProvider,
        anthropic: AnthropicResolver,
    ):
        self.finnhub = finnhub
        self.fmp = fmp
        self.alpha_vantage = alpha_vantage
        self.anthropic = anthropic

    @classmethod
    def from_keys(cls, keys: ProviderKeys) -> "ProviderSet":
        return cls(
            finnhub=FinnhubProvider(keys.finnhub),
            fmp=FMPProvider(keys.fmp),
            alpha_vantage=AlphaVantageProvider(keys.alpha_vantage),
            anthropic=AnthropicResolver(keys.anthropic),
        )

    @property
    def keys(self) -> ProviderKeys:
        return ProviderKeys(
            finnhub=self.finnhub.api_key,
            fmp=self.fmp.api_key,
            alpha_vantage=self.alpha_vantage.api_key,
            anthropic=self.anthropic.api_key,
        )


__all__ = [
    "PROVIDER_ERRORS",
    "AlphaVantageProvider",
    "AnthropicResolver",
    "FMPProvider",
    "FinnhubProvider",
    "ProviderAdapter",
    "ProviderSet",
]
