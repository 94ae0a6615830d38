"""
SQLite engine and session handling for the portfolio store.

One engine per process, bound to the path from ``FOLIO_TRACKER_DB_PATH``
(default ``~/.folio-tracker/data.db``) unless a path is passed explicitly.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from folio_tracker.lib.config import get_db_path

logger = logging.getLogger(__name__)

# Seconds SQLite waits on a locked database before failing a write
BUSY_TIMEOUT = 5


class Base(DeclarativeBase):
    """Declarative base for folio-tracker tables."""


_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker[Session]] = None


def _configure_connection(dbapi_conn: Any, connection_record: Any) -> None:
    """Per-connection SQLite settings: WAL journal and a busy timeout."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT * 1000}")
    cursor.close()


def get_engine(db_path: Optional[Path] = None) -> Engine:
    """
    Engine for the portfolio database, created on first use.

    Args:
        db_path: Database file; only honoured when the engine does not exist yet
    """
    global _engine, _session_factory

    if _engine is None:
        path = db_path or get_db_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        _engine = create_engine(f"sqlite:///{path}", connect_args={"check_same_thread": False})
        event.listen(_engine, "connect", _configure_connection)
        _session_factory = sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False)
        logger.debug(f"Opened portfolio database at {path}")

    return _engine


def reset_engine() -> None:
    """Dispose of the engine so the next call reopens the database (tests switch paths)."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


@contextmanager
def db_session() -> Iterator[Session]:
    """
    Session wrapped in one transaction: committed when the block exits,
    rolled back if it raises.

    Usage:
        with db_session() as session:
            session.add(SnapshotRow(timestamp=..., total_invested=...))
    """
    get_engine()
    assert _session_factory is not None
    with _session_factory.begin() as session:
        yield session


def init_db(db_path: Optional[Path] = None) -> None:
    """Create any missing tables."""
    # Registers the table classes on Base.metadata
    from folio_tracker.storage import tables  # noqa: F401

    Base.metadata.create_all(bind=get_engine(db_path))


def reset_db(db_path: Optional[Path] = None) -> None:
    """Drop and recreate every table. **Deletes all stored data.**"""
    from folio_tracker.storage import tables  # noqa: F401

    engine = get_engine(db_path)
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
