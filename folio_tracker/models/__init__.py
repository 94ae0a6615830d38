"""
Domain models for folio-tracker.

Plain frozen dataclasses; persistence rows live in folio_tracker.storage.tables.
"""

from folio_tracker.models.position import DEFAULT_PLATFORM, AssetType, Position
from folio_tracker.models.quote import PriceMetadata, PriceQuote, PriceRecord
from folio_tracker.models.resolution import (
    AssetProfile,
    AssetRecord,
    Resolution,
    ResolutionCandidate,
    SearchResult,
)
from folio_tracker.models.snapshot import Snapshot
from folio_tracker.models.transaction import SaleRecord, Transaction, TransactionType

__all__ = [
    # Ledger
    "AssetType",
    "DEFAULT_PLATFORM",
    "Position",
    "Transaction",
    "TransactionType",
    "SaleRecord",
    # Pricing
    "PriceQuote",
    "PriceMetadata",
    "PriceRecord",
    # Resolution
    "ResolutionCandidate",
    "Resolution",
    "AssetRecord",
    "AssetProfile",
    "SearchResult",
    # History
    "Snapshot",
]
