"""Import pipeline: parse pasted text, resolve identifiers, report what will be imported."""

import enum
import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from folio_tracker.lib.validators import is_isin
from folio_tracker.models import Position, ResolutionCandidate
from folio_tracker.services.identifier_resolver import DecisionCallback, IdentifierResolver
from folio_tracker.services.text_parser import parse_text

logger = logging.getLogger(__name__)


class ImportStatus(str, enum.Enum):
    """Overall outcome of an import."""

    NOTHING_IMPORTED = "nothing_imported"
    PARTIAL = "partial"
    COMPLETE = "complete"


@dataclass
class ImportReport:
    """Positions ready to merge plus everything the user should be told."""

    positions: list[Position] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    resolved: dict[str, str] = field(default_factory=dict)  # identifier -> ticker

    @property
    def status(self) -> ImportStatus:
        if not self.positions:
            return ImportStatus.NOTHING_IMPORTED
        if self.errors:
            return ImportStatus.PARTIAL
        return ImportStatus.COMPLETE

    @property
    def needs_price_lookup(self) -> list[str]:
        return [p.symbol for p in self.positions if p.needs_current_price]


def unresolved_error(identifiers: list[str]) -> str:
    return (
        f"Could not resolve {len(identifiers)} ISIN(s) to tickers: {', '.join(identifiers)}. "
        "These positions were skipped — please provide the correct ticker symbol."
    )


def _apply_resolution(position: Position, candidate: ResolutionCandidate) -> Position:
    changes: dict[str, object] = {"symbol": candidate.ticker, "resolved_from": position.symbol}
    if candidate.name and candidate.name != candidate.ticker:
        changes["name"] = candidate.name
    # Alternatives and manual entries carry no reliable type
    if candidate.confident and candidate.source != "Manual entry":
        changes["asset_type"] = candidate.asset_type
    return position.with_changes(**changes)


def apply_resolutions(
    positions: Iterable[Position], resolved: Mapping[str, ResolutionCandidate]
) -> tuple[list[Position], list[str]]:
    """
    Replace ISIN symbols by their resolved tickers.

    Returns:
        (positions to import, ISINs that stayed unresolved and were dropped)
    """
    kept: list[Position] = []
    unresolved: list[str] = []
    for position in positions:
        candidate = resolved.get(position.symbol)
        if candidate is not None:
            kept.append(_apply_resolution(position, candidate))
        elif is_isin(position.symbol):
            unresolved.append(position.symbol)
        else:
            kept.append(position)
    return kept, list(dict.fromkeys(unresolved))


class ImportService:
    """Turns pasted holdings text into positions with tradable tickers."""

    def __init__(self, resolver: IdentifierResolver):
        self.resolver = resolver

    async def prepare(
        self,
        text: str,
        decide: Optional[DecisionCallback] = None,
        known_tickers: Iterable[str] = (),
    ) -> ImportReport:
        """
        Parse and resolve without touching the portfolio.

        Args:
            text: Pasted or file contents
            decide: Disambiguation callback passed to the resolver
            known_tickers: Symbols already held, preferred among candidates

        Returns:
            Report whose positions never carry an ISIN as symbol
        """
        parsed = parse_text(text)
        report = ImportReport(errors=list(parsed.errors), warnings=list(parsed.warnings))
        logger.info(
            f"Parsed {len(parsed.positions)} position(s), {len(parsed.errors)} error(s), "
            f"{len(parsed.warnings)} warning(s)"
        )

        identifiers = parsed.identifiers_to_resolve
        resolved: dict[str, ResolutionCandidate] = {}
        if identifiers:
            logger.info(f"Resolving {len(identifiers)} ISIN(s)")
            resolved = await self.resolver.resolve(identifiers, decide, known_tickers)

        positions, unresolved = apply_resolutions(parsed.positions, resolved)
        if unresolved:
            report.errors.append(unresolved_error(unresolved))

        report.positions = positions
        report.resolved = {identifier: c.ticker for identifier, c in resolved.items()}
        return report
