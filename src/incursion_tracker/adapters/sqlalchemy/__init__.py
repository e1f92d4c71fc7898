"""SQLAlchemy adapter package."""

from __future__ import annotations

from .engine import (
    StartupError,
    configured_engine,
    create_database_engine,
    is_started,
    shutdown,
    startup,
)
from .last_incursion import (
    CachedIncursion,
    LastIncursionEntry,
    SqlAlchemyLastIncursionRepository,
)
from .mappings import create_all_tables, last_incursion_table, metadata, state_timestamp_table
from .store import SqlAlchemyStateTimestampStore

__all__ = [
    "CachedIncursion",
    "LastIncursionEntry",
    "SqlAlchemyLastIncursionRepository",
    "SqlAlchemyStateTimestampStore",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "create_database_engine",
    "is_started",
    "last_incursion_table",
    "metadata",
    "shutdown",
    "startup",
    "state_timestamp_table",
]
