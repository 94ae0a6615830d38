"""Currency conversion into the portfolio's base currency."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Callable, Iterable, Optional

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
)

from folio_tracker.lib.api_client import APIClient
from folio_tracker.lib.api_models import ExchangeRateResponse
from folio_tracker.lib.config import EXCHANGE_RATE_CACHE_PATH, EXCHANGE_RATE_URL, get_base_currency
from folio_tracker.lib.errors import APIError
from folio_tracker.lib.exchanges import detect_currency

logger = logging.getLogger(__name__)

ONE = Decimal("1")


class CurrencyConverter:
    """Holds rates to the base currency and converts amounts with them.

    ``rates[c]`` is the value of one unit of ``c`` in the base currency.
    Rates come from open.er-api.com; when that fails, individual currencies
    are looked up as Yahoo Finance forex pairs, and as a last resort the rates
    saved by the previous successful fetch are used.
    """

    def __init__(
        self,
        base_currency: Optional[str] = None,
        cache_path: Optional[Path] = None,
        client_factory: Optional[Callable[[], APIClient]] = None,
    ) -> None:
        self.base_currency = (base_currency or get_base_currency()).upper()
        self.cache_path = cache_path or EXCHANGE_RATE_CACHE_PATH
        self._client_factory = client_factory or (
            lambda: APIClient("ExchangeRate-API", EXCHANGE_RATE_URL)
        )
        self.rates: dict[str, Decimal] = {}
        self.rates_timestamp: Optional[str] = None

    @retry(
        stop=(stop_after_attempt(3) | stop_after_delay(30)),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((APIError, asyncio.TimeoutError)),
        reraise=True,
    )
    async def _fetch_from_api(self) -> dict[str, Decimal]:
        """
        Fetch all rates for the base currency, inverted to "1 foreign = X base".

        Raises:
            APIError: Request failed
            ValueError: API reported an error or returned an unexpected payload
        """
        async with self._client_factory() as client:
            data = await client.get(f"/{self.base_currency}")

        response = ExchangeRateResponse.model_validate(data)
        if response.result != "success" or not response.rates:
            raise ValueError(f"API error: {response.error_type or 'Invalid response format'}")

        rates = {
            currency: ONE / Decimal(str(rate_from_base))
            for currency, rate_from_base in response.rates.items()
        }
        rates[self.base_currency] = ONE
        return rates

    def _fetch_from_yfinance(self, currency: str) -> Optional[Decimal]:
        """
        Latest close of the ``{currency}{base}=X`` forex pair.

        Returns:
            Rate or None if unavailable
        """
        forex_symbol = f"{currency}{self.base_currency}=X"
        try:
            import yfinance as yf

            hist = yf.Ticker(forex_symbol).history(period="5d")
            if hist.empty or "Close" not in hist.columns:
                logger.warning(f"No forex data available for {forex_symbol}")
                return None
            rate = Decimal(str(float(hist["Close"].iloc[-1])))
            logger.info(f"Yahoo Finance forex {forex_symbol}: {rate}")
            return rate if rate > 0 else None
        except Exception as e:
            logger.warning(f"Yahoo Finance forex error for {forex_symbol}: {e}")
            return None

    async def fetch_exchange_rates(self, currencies: Iterable[str] = ()) -> bool:
        """
        Refresh rates.

        Args:
            currencies: Currencies to look up individually if the rates API fails

        Returns:
            True if any rates are available afterwards
        """
        logger.info(f"Fetching exchange rates (base: {self.base_currency})")
        try:
            rates = await self._fetch_from_api()
            self._set_rates(rates, persist=True)
            logger.info(f"Loaded {len(rates)} exchange rates")
            return True
        except (APIError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(f"Primary forex API failed: {e}")

        cached = self._load_cache()
        fallback: dict[str, Decimal] = {}
        for currency in dict.fromkeys(c.upper() for c in currencies):
            if currency == self.base_currency:
                continue
            rate = self._fetch_from_yfinance(currency)
            if rate is not None:
                fallback[currency] = rate

        if fallback:
            self._set_rates({**(cached or {}), **fallback, self.base_currency: ONE}, persist=True)
            logger.info(f"Loaded {len(fallback)} exchange rate(s) from Yahoo Finance")
            return True

        if cached:
            self.rates = cached
            logger.info("Loaded cached exchange rates")
            return True

        logger.warning("No exchange rates available")
        return False

    def load_cached_rates(self) -> bool:
        """Use the rates saved by the last successful fetch, without any network call."""
        cached = self._load_cache()
        if not cached:
            return False
        self.rates = cached
        return True

    def get_exchange_rate(self, currency: Optional[str]) -> Decimal:
        """Value of one unit of ``currency`` in the base currency; 1 if unknown."""
        if not currency or currency.upper() == self.base_currency:
            return ONE
        return self.rates.get(currency.upper(), ONE)

    def to_base_currency(self, amount: Decimal, currency: Optional[str]) -> Decimal:
        return amount * self.get_exchange_rate(currency)

    def symbol_rate(self, symbol: str) -> Decimal:
        """Rate for the trading currency implied by a symbol's exchange suffix."""
        return self.get_exchange_rate(detect_currency(symbol))

    def _set_rates(self, rates: dict[str, Decimal], persist: bool) -> None:
        self.rates = rates
        self.rates_timestamp = datetime.now(timezone.utc).isoformat()
        if persist:
            self._save_cache()

    def _save_cache(self) -> None:
        payload = {
            "base": self.base_currency,
            "timestamp": self.rates_timestamp,
            "rates": {currency: str(rate) for currency, rate in self.rates.items()},
        }
        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            self.cache_path.write_text(json.dumps(payload))
        except OSError as e:
            logger.warning(f"Failed to cache exchange rates: {e}")

    def _load_cache(self) -> Optional[dict[str, Decimal]]:
        if not self.cache_path.exists():
            return None
        try:
            payload = json.loads(self.cache_path.read_text())
            if payload.get("base") != self.base_currency:
                logger.debug("Cached exchange rates use a different base currency")
                return None
            self.rates_timestamp = payload.get("timestamp")
            return {c: Decimal(rate) for c, rate in payload["rates"].items()}
        except (OSError, ValueError, KeyError, InvalidOperation) as e:
            logger.warning(f"Failed to load cached exchange rates: {e}")
            return None
