"""Async JSON client shared by the quote, lookup and exchange-rate providers."""

import asyncio
from typing import Any, Dict, Optional

import aiohttp

from folio_tracker.lib.config import DEFAULT_TIMEOUT
from folio_tracker.lib.errors import APIConnectionError, APIError, APIRateLimitError
from folio_tracker.lib.logging_config import get_logger

logger = get_logger(__name__)

RATE_LIMITED = 429
# Gateway hiccups worth a second try; any other error status fails at once
TRANSIENT_STATUSES = frozenset({502, 503, 504})


class APIClient:
    """
    One provider's HTTP session.

    Throttled (429) and gateway (502-504) answers and timeouts are retried with
    1s, 2s, 4s... backoff up to ``max_retries`` attempts. Everything else fails
    on the first try.

    Example:
        async with APIClient("Finnhub", FINNHUB_BASE_URL) as client:
            quote = await client.get("/quote", params={"symbol": "AAPL", "token": key})
    """

    def __init__(
        self,
        api_name: str,
        base_url: Optional[str] = None,
        default_timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = 3,
    ):
        """
        Args:
            api_name: Provider name used in error and log messages
            base_url: Prefix for every endpoint; without it endpoints are full URLs
            default_timeout: Per-request timeout in seconds
            max_retries: Attempts before giving up on a retryable failure
        """
        self.api_name = api_name
        self.base_url = base_url.rstrip("/") if base_url else None
        self.default_timeout = default_timeout
        self.max_retries = max_retries
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "APIClient":
        self.session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.session and not self.session.closed:
            await self.session.close()

    async def get(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
    ) -> Any:
        """GET ``endpoint`` and return the decoded JSON (object or array)."""
        return await self.request("GET", endpoint, params=params, headers=headers, timeout=timeout)

    async def post(
        self,
        endpoint: str,
        json_body: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
    ) -> Any:
        """POST a JSON body to ``endpoint`` and return the decoded JSON."""
        return await self.request(
            "POST", endpoint, headers=headers, json_body=json_body, timeout=timeout
        )

    async def request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        timeout: Optional[int] = None,
    ) -> Any:
        """
        Send one request, retrying throttled and transient failures.

        Raises:
            APIRateLimitError: Still throttled on the last attempt
            APIError: Any other error status
            APIConnectionError: The provider could not be reached
            asyncio.TimeoutError: Timed out on every attempt
        """
        if not self.session:
            raise RuntimeError("APIClient must be used as context manager")

        seconds = timeout or self.default_timeout
        for attempt in range(1, self.max_retries + 1):
            final = attempt == self.max_retries
            try:
                return await self._send(method, endpoint, params, headers, json_body, seconds)
            except aiohttp.ClientResponseError as e:
                if e.status == RATE_LIMITED and final:
                    raise APIRateLimitError(self.api_name) from e
                if e.status not in TRANSIENT_STATUSES | {RATE_LIMITED} or final:
                    message = f"{self.api_name} request failed: {e.status} {e.message}"
                    raise APIError(message) from e
                logger.debug(f"{self.api_name} {method} {endpoint}: HTTP {e.status}, retrying")
            except asyncio.TimeoutError:
                if final:
                    raise
                logger.debug(f"{self.api_name} {method} {endpoint}: timed out, retrying")
            except aiohttp.ClientError as e:
                raise APIConnectionError(self.api_name, f"network error: {e}") from e

            await asyncio.sleep(2 ** (attempt - 1))

        raise APIError(f"{self.api_name}: no attempts made (max_retries={self.max_retries})")

    async def _send(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]],
        headers: Optional[Dict[str, str]],
        json_body: Optional[Dict[str, Any]],
        timeout: int,
    ) -> Any:
        """Single round trip; HTTP error statuses surface as ClientResponseError."""
        assert self.session is not None
        url = f"{self.base_url}{endpoint}" if self.base_url else endpoint
        async with self.session.request(
            method,
            url,
            params=params,
            headers=headers,
            json=json_body,
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as response:
            response.raise_for_status()
            return await response.json(content_type=None)
