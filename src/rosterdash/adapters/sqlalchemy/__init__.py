"""SQLAlchemy adapter package for local roster state."""

from __future__ import annotations

from .mappings import create_all_tables, kv_entry_table, metadata
from .store import (
    SqlAlchemyKeyValueStore,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyKeyValueStore",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "kv_entry_table",
    "metadata",
    "shutdown",
    "startup",
]
