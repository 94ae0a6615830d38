"""Identifier resolution and asset registry models."""

from dataclasses import dataclass
from typing import Optional

from folio_tracker.models.position import AssetType


@dataclass(frozen=True)
class ResolutionCandidate:
    """A ticker proposed for an input identifier by one resolver tier.

    Several candidates for one ISIN are usually alternate exchange listings
    of the same instrument.
    """

    ticker: str
    name: str
    asset_type: str = AssetType.STOCK.value
    exchange: str = ""
    confident: bool = True
    source: str = ""


@dataclass(frozen=True)
class Resolution:
    """Candidates for one identifier and, once decided, the selected one.

    ``needs_decision`` means the caller must pick a candidate (by index),
    enter a ticker manually, or decline.
    """

    identifier: str
    candidates: tuple[ResolutionCandidate, ...]
    selected: Optional[ResolutionCandidate] = None
    needs_decision: bool = False
    reason: str = ""

    @property
    def resolved(self) -> bool:
        return self.selected is not None


@dataclass(frozen=True)
class AssetRecord:
    """Registry entry describing a known instrument."""

    ticker: str
    name: str
    asset_type: str = AssetType.STOCK.value
    isin: Optional[str] = None
    stock_exchange: str = ""
    sector: str = "Other"
    currency: str = "USD"


@dataclass(frozen=True)
class AssetProfile:
    """Company profile fields used to enrich a registry entry."""

    sector: str
    source: str
    industry: Optional[str] = None
    currency: Optional[str] = None
    exchange: Optional[str] = None


@dataclass(frozen=True)
class SearchResult:
    """One instrument matching a free-text asset search."""

    symbol: str
    name: str
    asset_type: str = AssetType.STOCK.value
