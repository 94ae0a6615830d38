"""Pydantic models for provider API responses.

Each provider adapter validates raw JSON into these models at the boundary and
converts them to the canonical PriceQuote / ResolutionCandidate shapes.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class FinnhubQuote(BaseModel):
    """Finnhub /quote response."""

    current: Optional[float] = Field(None, alias="c")
    change: Optional[float] = Field(None, alias="d")
    percent_change: Optional[float] = Field(None, alias="dp")
    high: Optional[float] = Field(None, alias="h")
    low: Optional[float] = Field(None, alias="l")
    open: Optional[float] = Field(None, alias="o")
    previous_close: Optional[float] = Field(None, alias="pc")

    model_config = {"populate_by_name": True}


class FinnhubProfile(BaseModel):
    """Finnhub /stock/profile2 response (empty object when the symbol or ISIN is unknown)."""

    ticker: Optional[str] = None
    name: Optional[str] = None
    exchange: Optional[str] = None
    currency: Optional[str] = None
    country: Optional[str] = None
    finnhub_industry: Optional[str] = Field(None, alias="finnhubIndustry")

    model_config = {"populate_by_name": True}


class FinnhubSearchResult(BaseModel):
    """One entry of Finnhub /search results."""

    symbol: str
    description: Optional[str] = None
    display_symbol: Optional[str] = Field(None, alias="displaySymbol")
    type: Optional[str] = None

    model_config = {"populate_by_name": True}


class FinnhubSearchResponse(BaseModel):
    """Finnhub /search response."""

    count: int = 0
    result: list[FinnhubSearchResult] = Field(default_factory=list)


class FMPQuoteShort(BaseModel):
    """One record of FMP /stable/quote-short."""

    symbol: Optional[str] = None
    price: Optional[float] = None
    volume: Optional[float] = None


class FMPIsinResult(BaseModel):
    """One record of FMP /stable/search-isin."""

    symbol: Optional[str] = None
    name: Optional[str] = None
    company_name: Optional[str] = Field(None, alias="companyName")
    exchange: Optional[str] = None
    exchange_short_name: Optional[str] = Field(None, alias="exchangeShortName")
    isin: Optional[str] = None

    model_config = {"populate_by_name": True}


class FMPProfile(BaseModel):
    """One record of FMP /stable/profile."""

    symbol: Optional[str] = None
    company_name: Optional[str] = Field(None, alias="companyName")
    sector: Optional[str] = None
    industry: Optional[str] = None
    currency: Optional[str] = None
    exchange: Optional[str] = None
    exchange_short_name: Optional[str] = Field(None, alias="exchangeShortName")

    model_config = {"populate_by_name": True}


class FMPSearchResult(BaseModel):
    """One record of FMP /stable/search-symbol."""

    symbol: Optional[str] = None
    name: Optional[str] = None
    currency: Optional[str] = None
    exchange_short_name: Optional[str] = Field(None, alias="exchangeShortName")

    model_config = {"populate_by_name": True}


class AlphaVantageGlobalQuote(BaseModel):
    """The "Global Quote" object of Alpha Vantage GLOBAL_QUOTE."""

    symbol: Optional[str] = Field(None, alias="01. symbol")
    price: Optional[float] = Field(None, alias="05. price")
    latest_trading_day: Optional[str] = Field(None, alias="07. latest trading day")

    model_config = {"populate_by_name": True}

    @field_validator("price", mode="before")
    @classmethod
    def blank_price_is_missing(cls, v: Any) -> Any:
        """Alpha Vantage returns "" for fields it has no value for."""
        if v == "":
            return None
        return v


class AlphaVantageQuoteResponse(BaseModel):
    """Alpha Vantage GLOBAL_QUOTE response, including its throttling notices."""

    global_quote: Optional[AlphaVantageGlobalQuote] = Field(None, alias="Global Quote")
    note: Optional[str] = Field(None, alias="Note")
    information: Optional[str] = Field(None, alias="Information")
    error_message: Optional[str] = Field(None, alias="Error Message")

    model_config = {"populate_by_name": True}

    @property
    def is_rate_limited(self) -> bool:
        """True when the payload is a throttling notice rather than a quote."""
        return bool(self.note or self.information)


class AlphaVantageOverview(BaseModel):
    """Alpha Vantage OVERVIEW response, including its throttling notices."""

    symbol: Optional[str] = Field(None, alias="Symbol")
    name: Optional[str] = Field(None, alias="Name")
    sector: Optional[str] = Field(None, alias="Sector")
    industry: Optional[str] = Field(None, alias="Industry")
    currency: Optional[str] = Field(None, alias="Currency")
    exchange: Optional[str] = Field(None, alias="Exchange")
    note: Optional[str] = Field(None, alias="Note")
    information: Optional[str] = Field(None, alias="Information")

    model_config = {"populate_by_name": True}

    @field_validator("sector", "industry", "currency", "exchange", mode="before")
    @classmethod
    def none_string_is_missing(cls, v: Any) -> Any:
        """Alpha Vantage writes absent profile fields as "None" or "-"."""
        if v in ("", "None", "-"):
            return None
        return v

    @property
    def is_rate_limited(self) -> bool:
        return bool(self.note or self.information)


class AnthropicContentBlock(BaseModel):
    """One content block of a Messages API response."""

    type: str
    text: Optional[str] = None


class AnthropicMessageResponse(BaseModel):
    """Anthropic Messages API response (only the fields used here)."""

    content: list[AnthropicContentBlock] = Field(default_factory=list)
    stop_reason: Optional[str] = None

    @property
    def text(self) -> str:
        """Text of the first text block, or an empty string."""
        for block in self.content:
            if block.type == "text" and block.text:
                return block.text
        return ""


class AIAlternative(BaseModel):
    """An alternative listing suggested for an uncertain identifier."""

    ticker: Optional[str] = None
    name: Optional[str] = None
    exchange: Optional[str] = None


class AIResolutionItem(BaseModel):
    """One identifier resolution returned by the model."""

    input: Optional[str] = None
    ticker: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    exchange: Optional[str] = None
    confident: Optional[bool] = None
    alternatives: list[AIAlternative] = Field(default_factory=list)

    @field_validator("alternatives", mode="before")
    @classmethod
    def coerce_alternatives(cls, v: Any) -> Any:
        """Accept bare ticker strings as alternatives."""
        if v is None:
            return []
        if isinstance(v, list):
            return [{"ticker": item} if isinstance(item, str) else item for item in v]
        return v


class AIResolutionPayload(BaseModel):
    """JSON document the model is asked to return."""

    results: list[AIResolutionItem] = Field(default_factory=list)


class ExchangeRateResponse(BaseModel):
    """open.er-api.com /v6/latest response."""

    result: str
    base_code: Optional[str] = None
    rates: dict[str, float] = Field(default_factory=dict)
    time_last_update_utc: Optional[str] = None
    error_type: Optional[str] = Field(None, alias="error-type")

    model_config = {"populate_by_name": True}

    @field_validator("rates")
    @classmethod
    def drop_unusable_rates(cls, v: dict[str, float]) -> dict[str, float]:
        """Zero or negative rates cannot be inverted; leave those currencies out."""
        return {currency: rate for currency, rate in v.items() if rate > 0}
