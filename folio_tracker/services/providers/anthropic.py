"""Anthropic Messages API adapter: last-resort identifier resolution (resolver tier 4)."""

import json
import logging
import re
from typing import Any, Optional, Sequence

from folio_tracker.lib.api_models import (
    AIAlternative,
    AIResolutionItem,
    AIResolutionPayload,
    AnthropicMessageResponse,
)
from folio_tracker.lib.config import (
    ANTHROPIC_MAX_TOKENS,
    ANTHROPIC_MESSAGES_URL,
    ANTHROPIC_MIN_INTERVAL,
    ANTHROPIC_VERSION,
    get_anthropic_model,
)
from folio_tracker.lib.errors import ParseError
from folio_tracker.lib.validators import is_isin, normalize_asset_type
from folio_tracker.models import ResolutionCandidate
from folio_tracker.services.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)

SOURCE = "Claude AI"

_CODE_FENCE = re.compile(r"```(?:json)?")

RESOLUTION_PROMPT = """I have these financial instrument identifiers that I need resolved to their commonly-used stock TICKER symbols. They may be ISINs, WKNs, SEDOLs, company names, or partial tickers.

IMPORTANT: The "ticker" field MUST always be a real stock exchange ticker symbol (e.g. "AAPL", "MSFT", "SAN.PA", "VOW3.DE"). NEVER return an ISIN, WKN, SEDOL, or any other identifier code as the ticker. If you cannot determine the ticker, set "ticker" to null.

Identifiers:
{identifiers}

For each one, return the most commonly used ticker symbol (preferring the primary listing exchange), the full company/fund name, the asset type (Stock, ETF, REIT, Crypto, Bond), and the exchange suffix if non-US (e.g. ".PA" for Paris, ".L" for London, ".DE" for Frankfurt).

If you are NOT confident about the resolution for an identifier, include "alternatives" with up to 3 possible matches so the user can pick. Each alternative must also have a real ticker symbol, not an ISIN.

Respond ONLY with valid JSON, no markdown, no preamble. Format:
{{"results": [{{"input": "...", "ticker": "AAPL", "name": "...", "type": "Stock", "exchange": "", "confident": true, "alternatives": []}}]}}"""  # noqa: E501


def build_prompt(identifiers: Sequence[str]) -> str:
    """Numbered list of identifiers embedded in the resolution instructions."""
    numbered = "\n".join(f"{i}. {identifier}" for i, identifier in enumerate(identifiers, 1))
    return RESOLUTION_PROMPT.format(identifiers=numbered)


def _resolved_ticker(ticker: str, exchange: Optional[str]) -> str:
    """``SAN`` + ``.PA`` -> ``SAN.PA``; only dotted suffixes are appended, and only once."""
    ticker = ticker.strip()
    exchange = (exchange or "").strip()
    if exchange.startswith(".") and not ticker.upper().endswith(exchange.upper()):
        ticker += exchange
    return ticker.upper()


def parse_resolution_text(text: str) -> dict[str, list[ResolutionCandidate]]:
    """
    Convert the model's JSON answer into candidates per input identifier.

    The best guess comes first and carries the model's confidence; alternatives
    follow as non-confident candidates. Items whose ticker is missing or is
    itself ISIN-shaped are discarded, and ISIN-shaped alternatives are dropped.

    Raises:
        ParseError: If the text is not the expected JSON document
    """
    try:
        payload = AIResolutionPayload.model_validate(
            json.loads(_CODE_FENCE.sub("", text).strip())
        )
    except ValueError as e:
        raise ParseError(SOURCE, str(e)) from e

    resolved: dict[str, list[ResolutionCandidate]] = {}
    for item in payload.results:
        candidates = _item_candidates(item)
        if candidates:
            resolved[item.input.strip().upper()] = candidates  # type: ignore[union-attr]
    return resolved


def _item_candidates(item: AIResolutionItem) -> list[ResolutionCandidate]:
    if not item.input or not item.ticker:
        return []
    if is_isin(item.ticker.strip().upper()):
        logger.warning(f"Claude returned ISIN as ticker for {item.input}, skipping")
        return []

    ticker = _resolved_ticker(item.ticker, item.exchange)
    candidates = [
        ResolutionCandidate(
            ticker=ticker,
            name=item.name or item.ticker,
            asset_type=normalize_asset_type(item.type),
            exchange=item.exchange or "",
            confident=item.confident is not False,
            source=SOURCE,
        )
    ]
    for alternative in item.alternatives:
        candidate = _alternative_candidate(alternative)
        if candidate and all(c.ticker != candidate.ticker for c in candidates):
            candidates.append(candidate)
    return candidates


def _alternative_candidate(alternative: AIAlternative) -> Optional[ResolutionCandidate]:
    if not alternative.ticker or is_isin(alternative.ticker.strip().upper()):
        return None
    ticker = _resolved_ticker(alternative.ticker, alternative.exchange)
    return ResolutionCandidate(
        ticker=ticker,
        name=alternative.name or ticker,
        exchange=alternative.exchange or "",
        confident=False,
        source=SOURCE,
    )


class AnthropicResolver(ProviderAdapter):
    """Resolves leftover identifiers with one batched Messages API request."""

    name = SOURCE

    def __init__(self, api_key: str, model: Optional[str] = None, **kwargs: Any) -> None:
        kwargs.setdefault("min_interval", ANTHROPIC_MIN_INTERVAL)
        super().__init__(api_key, **kwargs)
        self.model = model or get_anthropic_model()

    async def resolve(self, identifiers: Sequence[str]) -> dict[str, list[ResolutionCandidate]]:
        """
        Ask the model for tickers for all identifiers in a single request.

        Returns:
            Candidates keyed by uppercased input identifier; identifiers the
            model could not resolve are absent

        Raises:
            APIError: Request failed
            ParseError: Response was not the expected JSON document
        """
        if not identifiers:
            return {}

        logger.info(f"Resolving {len(identifiers)} identifier(s) via Claude")
        body = {
            "model": self.model,
            "max_tokens": ANTHROPIC_MAX_TOKENS,
            "messages": [{"role": "user", "content": build_prompt(identifiers)}],
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        data = await self._post(ANTHROPIC_MESSAGES_URL, body, headers)
        message = AnthropicMessageResponse.model_validate(data)
        return parse_resolution_text(message.text)
