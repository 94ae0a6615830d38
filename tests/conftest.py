"""Shared fixtures: a throwaway portfolio database, no real keys, canned providers."""

import os

import pytest

from folio_tracker.lib.config import DB_PATH_ENV_VAR, ProviderKeys
from folio_tracker.lib.rate_limiter import RateLimiter
from folio_tracker.services.providers import (
    AlphaVantageProvider,
    AnthropicResolver,
    FinnhubProvider,
    FMPProvider,
    ProviderSet,
)
from folio_tracker.storage.db import init_db, reset_db, reset_engine

PROVIDER_ENV_VARS = ("FINNHUB_API_KEY", "FMP_API_KEY", "ALPHA_VANTAGE_API_KEY", "ANTHROPIC_API_KEY")


@pytest.fixture(scope="session", autouse=True)
def portfolio_db(tmp_path_factory):
    """Portfolio database for the whole session.

    The path goes into the environment before the engine is created, so code
    that opens the default database (the CLI) lands here too.
    """
    db_path = tmp_path_factory.mktemp("portfolio") / "folio.db"
    os.environ[DB_PATH_ENV_VAR] = str(db_path)
    os.environ["LOG_FILE"] = ""

    reset_engine()
    init_db(db_path)
    yield db_path
    reset_engine()


@pytest.fixture(autouse=True)
def empty_portfolio(portfolio_db):
    """Every test starts from empty tables."""
    reset_engine()
    reset_db(portfolio_db)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """No real API keys and no shared exchange-rate cache."""
    for var in PROVIDER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(
        "folio_tracker.services.currency_converter.EXCHANGE_RATE_CACHE_PATH",
        tmp_path / "exchange_rates.json",
    )


@pytest.fixture
def no_wait():
    """Factory for rate limiters that never sleep."""
    return lambda name="test": RateLimiter(name, 0)


@pytest.fixture
def all_keys():
    return ProviderKeys(finnhub="fh-key", fmp="fmp-key", alpha_vantage="av-key", anthropic="ai-key")


def fake_client_factory(responses):
    """
    Build an APIClient factory whose ``get``/``post`` return canned payloads.

    Args:
        responses: Callable (method, endpoint, params_or_body) -> payload, or
            raises to simulate a failure

    Returns:
        (factory, calls) where calls records every request made
    """
    calls = []

    class FakeClient:
        async def __aenter__(self):
            return self

        async def __aexit__(self, *exc):
            return None

        async def get(self, endpoint, params=None, **kwargs):
            calls.append(("GET", endpoint, params))
            return responses("GET", endpoint, params)

        async def post(self, endpoint, json_body=None, headers=None, **kwargs):
            calls.append(("POST", endpoint, json_body))
            return responses("POST", endpoint, json_body)

    return FakeClient, calls


@pytest.fixture
def make_client():
    return fake_client_factory


@pytest.fixture
def build_providers(no_wait):
    """
    Build a ProviderSet whose adapters answer from canned handlers.

    Adapters given no handler are disabled (blank key). Each enabled adapter
    exposes the requests it made as ``.calls``.
    """

    def build(finnhub=None, fmp=None, alpha_vantage=None, anthropic=None):
        def adapter(cls, key, handler):
            if handler is None:
                return cls("", limiter=no_wait(cls.name))
            factory, calls = fake_client_factory(handler)
            provider = cls(key, limiter=no_wait(cls.name), client_factory=factory)
            provider.calls = calls
            return provider

        return ProviderSet(
            finnhub=adapter(FinnhubProvider, "fh-key", finnhub),
            fmp=adapter(FMPProvider, "fmp-key", fmp),
            alpha_vantage=adapter(AlphaVantageProvider, "av-key", alpha_vantage),
            anthropic=adapter(AnthropicResolver, "ai-key", anthropic),
        )

    return build
