"""Resolve ISINs and other unknown codes to tradable ticker symbols.

Tiers, each consuming only what earlier tiers left unresolved:

1. the local asset registry (previously learned ISIN -> ticker mappings),
2. Finnhub profile + search,
3. FMP ISIN search,
4. one batched Claude request for everything still unresolved.

Disambiguation is split into ``propose_candidates`` (pure, may return a
resolution that needs a decision) and ``apply_choice`` (applies the caller's
answer), so the pipeline never blocks on user input itself; ``resolve`` calls
an optional synchronous ``decide`` callback between the two.
"""

import logging
from dataclasses import replace
from typing import Callable, Iterable, Optional, Sequence, Union

from folio_tracker.lib.errors import StorageError, ValidationError
from folio_tracker.lib.sectors import is_known_sector
from folio_tracker.lib.validators import is_isin, validate_symbol
from folio_tracker.models import AssetRecord, Resolution, ResolutionCandidate
from folio_tracker.services.providers import PROVIDER_ERRORS, ProviderSet
from folio_tracker.storage.base import PortfolioStorage

logger = logging.getLogger(__name__)

Choice = Union[int, str, None]
DecisionCallback = Callable[[Resolution], Choice]


class AssetRegistry:
    """In-memory index of known instruments, loaded from and written through to storage."""

    def __init__(self, records: Iterable[AssetRecord] = ()):
        self._by_ticker: dict[str, AssetRecord] = {}
        self._by_isin: dict[str, str] = {}
        # Non-ISIN codes resolved this session (not persisted)
        self._aliases: dict[str, ResolutionCandidate] = {}
        for record in records:
            self._index(record)

    def _index(self, record: AssetRecord) -> None:
        self._by_ticker[record.ticker] = record
        if record.isin:
            self._by_isin[record.isin.upper()] = record.ticker

    def __contains__(self, ticker: object) -> bool:
        return isinstance(ticker, str) and ticker.upper() in self._by_ticker

    def __len__(self) -> int:
        return len(self._by_ticker)

    @property
    def tickers(self) -> set[str]:
        return set(self._by_ticker)

    def get(self, ticker: str) -> Optional[AssetRecord]:
        return self._by_ticker.get(ticker.upper())

    def remember(self, record: AssetRecord) -> AssetRecord:
        """Add or update an entry; a learned ISIN or sector survives an update without one."""
        current = self._by_ticker.get(record.ticker)
        if current is not None:
            record = replace(
                record,
                isin=record.isin or current.isin,
                sector=record.sector if is_known_sector(record.sector) else current.sector,
            )
        self._index(record)
        return record

    def lookup(self, identifier: str) -> Optional[ResolutionCandidate]:
        """Previously learned resolution for an identifier, if any."""
        identifier = identifier.upper()
        if identifier in self._aliases:
            return self._aliases[identifier]
        ticker = self._by_isin.get(identifier)
        if ticker is None:
            return None
        record = self._by_ticker[ticker]
        return ResolutionCandidate(
            ticker=ticker,
            name=record.name or ticker,
            asset_type=record.asset_type or "Stock",
            exchange="",
            source="Asset registry",
        )

    def register(self, identifier: str, candidate: ResolutionCandidate) -> Optional[AssetRecord]:
        """
        Remember a resolution.

        Returns:
            The registry record to persist for ISIN identifiers, None otherwise
        """
        identifier = identifier.upper()
        if not is_isin(identifier):
            self._aliases[identifier] = candidate
            return None
        record = AssetRecord(
            ticker=candidate.ticker,
            name=candidate.name or candidate.ticker,
            asset_type=candidate.asset_type or "Stock",
            isin=identifier,
            stock_exchange=candidate.exchange or "",
            sector="Other",
            currency="USD",
        )
        return self.remember(record)


def propose_candidates(
    identifier: str,
    candidates: Sequence[ResolutionCandidate],
    known_tickers: Iterable[str] = (),
) -> Resolution:
    """
    Decide whether the candidates for an identifier can be applied without asking.

    Auto-selects when there is a single candidate, when exactly one candidate
    is already known (in the portfolio or registry), or when the first
    candidate is the only confident one. Anything else needs a decision.
    """
    identifier = identifier.upper()
    candidates = tuple(candidates)

    if not candidates:
        return Resolution(identifier, candidates, reason="no candidates")

    if len(candidates) == 1:
        return Resolution(identifier, candidates, selected=candidates[0], reason="single match")

    known = {ticker.upper() for ticker in known_tickers}
    known_candidates = [c for c in candidates if c.ticker in known]
    if len(known_candidates) == 1:
        return Resolution(
            identifier, candidates, selected=known_candidates[0], reason="already tracked"
        )

    if candidates[0].confident and not any(c.confident for c in candidates[1:]):
        return Resolution(identifier, candidates, selected=candidates[0], reason="confident match")

    return Resolution(identifier, candidates, needs_decision=True, reason="ambiguous")


def apply_choice(resolution: Resolution, choice: Choice) -> Resolution:
    """
    Apply the caller's answer to a resolution that needed a decision.

    Args:
        resolution: Result of propose_candidates
        choice: 0-based candidate index, a manually entered ticker, or None to
            leave the identifier unresolved

    Returns:
        Resolution with ``selected`` set, or unresolved when the choice was
        None, out of range, or not a valid ticker
    """
    if choice is None:
        return Resolution(resolution.identifier, resolution.candidates, reason="declined")

    if isinstance(choice, int):
        if 0 <= choice < len(resolution.candidates):
            return Resolution(
                resolution.identifier,
                resolution.candidates,
                selected=resolution.candidates[choice],
                reason="chosen",
            )
        logger.warning(f"Choice {choice} out of range for {resolution.identifier}")
        return Resolution(resolution.identifier, resolution.candidates, reason="invalid choice")

    text = choice.strip().upper()
    if not text or is_isin(text):
        return Resolution(resolution.identifier, resolution.candidates, reason="invalid choice")
    try:
        ticker = validate_symbol(text)
    except ValidationError:
        return Resolution(resolution.identifier, resolution.candidates, reason="invalid choice")
    for candidate in resolution.candidates:
        if candidate.ticker == ticker:
            return Resolution(
                resolution.identifier, resolution.candidates, selected=candidate, reason="chosen"
            )
    manual = ResolutionCandidate(ticker=ticker, name=ticker, source="Manual entry")
    return Resolution(
        resolution.identifier, resolution.candidates, selected=manual, reason="manual"
    )


class IdentifierResolver:
    """Walks the resolution tiers for a batch of identifiers."""

    def __init__(
        self,
        providers: ProviderSet,
        registry: AssetRegistry,
        storage: Optional[PortfolioStorage] = None,
    ):
        """Initialize resolver.

        Args:
            providers: Provider adapters (disabled adapters are skipped)
            registry: Asset registry used as the first tier
            storage: Where learned ISIN mappings are persisted (optional)
        """
        self.providers = providers
        self.registry = registry
        self.storage = storage

    async def resolve(
        self,
        identifiers: Sequence[str],
        decide: Optional[DecisionCallback] = None,
        known_tickers: Iterable[str] = (),
    ) -> dict[str, ResolutionCandidate]:
        """
        Resolve identifiers to tickers.

        Args:
            identifiers: ISIN-shaped or otherwise unresolved codes
            decide: Called for every ambiguous resolution; returns a candidate
                index, a manual ticker, or None. Without it the first
                candidate is taken.
            known_tickers: Symbols already in the portfolio, preferred when they
                appear among the candidates

        Returns:
            Selected candidate per uppercased identifier; identifiers that no
            tier resolved (or whose decision was None) are absent
        """
        pending = list(dict.fromkeys(i.strip().upper() for i in identifiers if i.strip()))
        known = set(self.registry.tickers) | {t.upper() for t in known_tickers}
        resolved: dict[str, ResolutionCandidate] = {}
        to_persist: list[AssetRecord] = []

        def settle(identifier: str, candidates: Sequence[ResolutionCandidate]) -> None:
            resolution = propose_candidates(identifier, candidates, known)
            if resolution.needs_decision:
                choice = decide(resolution) if decide is not None else 0
                resolution = apply_choice(resolution, choice)
            if resolution.selected is None:
                logger.info(f"{identifier} left unresolved ({resolution.reason})")
                return
            selected = resolution.selected
            logger.info(
                f"Resolved {identifier} -> {selected.ticker} "
                f"({selected.source}, {len(candidates)} candidate(s), {resolution.reason})"
            )
            resolved[identifier] = selected
            known.add(selected.ticker)
            record = self.registry.register(identifier, selected)
            if record is not None:
                to_persist.append(record)

        # Tier 1: registry
        remaining = []
        for identifier in pending:
            cached = self.registry.lookup(identifier)
            if cached is not None:
                logger.debug(f"{identifier} -> {cached.ticker} from asset registry")
                resolved[identifier] = cached
            else:
                remaining.append(identifier)

        # Tiers 2 and 3: ISIN lookups, one identifier at a time
        for provider in (self.providers.finnhub, self.providers.fmp):
            if not provider.enabled or not remaining:
                continue
            unresolved_here = []
            for identifier in remaining:
                if not is_isin(identifier):
                    unresolved_here.append(identifier)
                    continue
                try:
                    candidates = await provider.lookup_isin(identifier)
                except PROVIDER_ERRORS as e:
                    logger.warning(f"{provider.name} ISIN lookup failed for {identifier}: {e}")
                    candidates = []
                if candidates:
                    settle(identifier, candidates)
                else:
                    unresolved_here.append(identifier)
            remaining = unresolved_here

        # Tier 4: one batched AI request
        anthropic = self.providers.anthropic
        if remaining and anthropic.enabled:
            try:
                answers = await anthropic.resolve(remaining)
            except PROVIDER_ERRORS as e:
                logger.warning(f"Failed to resolve identifiers via Claude: {e}")
                answers = {}
            for identifier in remaining:
                if identifier in answers:
                    settle(identifier, answers[identifier])
        elif remaining:
            logger.info(f"No Claude API key; {len(remaining)} identifier(s) left for the user")

        self._persist(to_persist)
        return resolved

    def _persist(self, records: list[AssetRecord]) -> None:
        if not records or self.storage is None:
            return
        try:
            self.storage.save_assets(records)
            logger.info(f"Persisted {len(records)} ISIN→ticker mapping(s) to asset registry")
        except StorageError as e:
            # The mappings stay in the in-memory registry for this session
            logger.warning(f"Failed to persist ISIN mappings: {e}")
