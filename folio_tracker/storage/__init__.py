"""Persistence layer: SQLite via SQLAlchemy behind the PortfolioStorage protocol."""

from folio_tracker.storage.base import PortfolioStorage
from folio_tracker.storage.sql_storage import SqlStorage

__all__ = ["PortfolioStorage", "SqlStorage"]
