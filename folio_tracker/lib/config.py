"""Application configuration constants."""

import os
from dataclasses import dataclass
from pathlib import Path

# Storage
APP_DIR = Path.home() / ".folio-tracker"
DEFAULT_DB_PATH = APP_DIR / "data.db"
DB_PATH_ENV_VAR = "FOLIO_TRACKER_DB_PATH"
EXCHANGE_RATE_CACHE_PATH = APP_DIR / "exchange_rates.json"

# HTTP
DEFAULT_TIMEOUT = 10  # seconds

# Provider endpoints
FINNHUB_BASE_URL = "https://finnhub.io/api/v1"
FMP_BASE_URL = "https://financialmodelingprep.com/stable"
ALPHA_VANTAGE_URL = "https://www.alphavantage.co/query"
ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
ANTHROPIC_DEFAULT_MODEL = "claude-sonnet-4-20250514"
ANTHROPIC_MAX_TOKENS = 2000
EXCHANGE_RATE_URL = "https://open.er-api.com/v6/latest"

# Batch refresh delays, sized to each provider's free-tier limit (seconds)
FINNHUB_REFRESH_DELAY = 1.0  # 60 calls/min
FMP_REFRESH_DELAY = 0.5  # 250 calls/day
ALPHA_VANTAGE_REFRESH_DELAY = 12.0  # 5 calls/min
DEFAULT_REFRESH_DELAY = 1.0

# Minimum spacing between any two calls to one provider (seconds)
FINNHUB_MIN_INTERVAL = 1.0
FMP_MIN_INTERVAL = 0.5
ALPHA_VANTAGE_MIN_INTERVAL = 12.0
ANTHROPIC_MIN_INTERVAL = 0.0

# Alternative symbol search
ALTERNATIVE_SYMBOL_DELAY = 0.5
MAX_RESOLUTION_CANDIDATES = 5

# Asset search
MAX_SEARCH_RESULTS = 8

ALPHA_VANTAGE_RATE_LIMIT_ERROR = "Rate limit (5/min) - wait 12s"

# Reporting
DEFAULT_BASE_CURRENCY = "EUR"

# Any one of these enables price refreshes
PRICE_PROVIDER_ENV_VARS = ("FINNHUB_API_KEY", "FMP_API_KEY", "ALPHA_VANTAGE_API_KEY")

# Any one of these enables asset search
SEARCH_PROVIDER_ENV_VARS = ("FINNHUB_API_KEY", "FMP_API_KEY")


@dataclass(frozen=True)
class ProviderKeys:
    """API keys for the market data and resolution providers.

    An empty key disables the corresponding tier.
    """

    finnhub: str = ""
    fmp: str = ""
    alpha_vantage: str = ""
    anthropic: str = ""

    @classmethod
    def from_env(cls) -> "ProviderKeys":
        """Read provider keys from environment variables."""
        return cls(
            finnhub=os.getenv("FINNHUB_API_KEY", ""),
            fmp=os.getenv("FMP_API_KEY", ""),
            alpha_vantage=os.getenv("ALPHA_VANTAGE_API_KEY", ""),
            anthropic=os.getenv("ANTHROPIC_API_KEY", ""),
        )

    @property
    def has_price_provider(self) -> bool:
        """True when at least one quote provider is configured."""
        return bool(self.finnhub or self.fmp or self.alpha_vantage)


def calculate_rate_delay(keys: ProviderKeys) -> tuple[float, str]:
    """Pick the delay between batch refresh calls from the fastest configured provider.

    Args:
        keys: Configured provider keys

    Returns:
        Tuple of (delay in seconds, human readable description)
    """
    if keys.finnhub:
        description = "Using Finnhub (primary)"
        if keys.fmp:
            description += " + FMP (fallback #1)"
        if keys.alpha_vantage:
            description += " + Alpha Vantage (fallback #2)"
        return FINNHUB_REFRESH_DELAY, description

    if keys.fmp:
        description = "Using FMP (primary - 250/day)"
        if keys.alpha_vantage:
            description += " + Alpha Vantage (fallback)"
        return FMP_REFRESH_DELAY, description

    if keys.alpha_vantage:
        return ALPHA_VANTAGE_REFRESH_DELAY, "Using Alpha Vantage only (5 calls/min - slower)"

    return DEFAULT_REFRESH_DELAY, "No API keys configured"


def get_db_path() -> Path:
    """Database path from FOLIO_TRACKER_DB_PATH, falling back to the default."""
    env_db_path = os.environ.get(DB_PATH_ENV_VAR)
    return Path(env_db_path) if env_db_path else DEFAULT_DB_PATH


def get_base_currency() -> str:
    """Reporting currency from FOLIO_TRACKER_BASE_CURRENCY (default EUR)."""
    return os.getenv("FOLIO_TRACKER_BASE_CURRENCY", DEFAULT_BASE_CURRENCY).upper()


def get_anthropic_model() -> str:
    """Model used for AI-assisted identifier resolution."""
    return os.getenv("ANTHROPIC_MODEL", ANTHROPIC_DEFAULT_MODEL)
