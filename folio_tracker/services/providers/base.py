"""Shared plumbing for provider adapters."""

import asyncio
from typing import Any, Callable, Optional

from folio_tracker.lib.api_client import APIClient
from folio_tracker.lib.errors import APIError, ParseError
from folio_tracker.lib.logging_config import get_logger
from folio_tracker.lib.rate_limiter import RateLimiter

logger = get_logger(__name__)

# Failures treated as a miss for the tier that raised them. ValueError covers
# undecodable JSON and pydantic validation errors.
PROVIDER_ERRORS = (APIError, ParseError, asyncio.TimeoutError, ValueError)


class ProviderAdapter:
    """Base class for one external data provider.

    Owns the provider's API key and its rate limiter; every HTTP call made
    through ``_get``/``_post`` first waits on the limiter, so spacing holds
    across every caller sharing the adapter instance. A blank key disables the
    provider entirely.
    """

    name = "provider"
    base_url: Optional[str] = None

    def __init__(
        self,
        api_key: str,
        limiter: Optional[RateLimiter] = None,
        client_factory: Optional[Callable[[], APIClient]] = None,
        min_interval: float = 0.0,
    ):
        """Initialize adapter.

        Args:
            api_key: Provider API key (empty string disables the adapter)
            limiter: Rate limiter to share; one is created from min_interval if omitted
            client_factory: Builds the HTTP client (tests inject fakes here)
            min_interval: Minimum seconds between calls when creating a limiter
        """
        self.api_key = api_key
        self.limiter = limiter or RateLimiter(self.name, min_interval)
        self._client_factory = client_factory or (lambda: APIClient(self.name, self.base_url))

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _get(self, endpoint: str, params: dict[str, Any]) -> Any:
        await self.limiter.acquire()
        logger.debug(f"{self.name} GET {endpoint} {params}")
        async with self._client_factory() as client:
            return await client.get(endpoint, params=params)

    async def _post(self, endpoint: str, body: dict[str, Any], headers: dict[str, str]) -> Any:
        await self.limiter.acquire()
        logger.debug(f"{self.name} POST {endpoint}")
        async with self._client_factory() as client:
            return await client.post(endpoint, json_body=body, headers=headers)
