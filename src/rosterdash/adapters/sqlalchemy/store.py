"""SQLAlchemy-backed key-value store and adapter lifecycle."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from rosterdash.config.storage import get_database_config
from rosterdash.domain.errors import PersistenceReadError, PersistenceWriteError

from .mappings import create_all_tables, kv_entry_table

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.engine import Engine

    from rosterdash.domain.ports.persistence import KeyValueStore

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the SQLAlchemy store is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    engine: Engine | None = None


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> Engine:
    """Initialise the SQLAlchemy engine and create the tables."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )
    if _STATE.engine is not None:
        _STATE.engine.dispose()

    resolved_engine = engine or create_engine(
        database_uri or get_database_config().uri, future=True
    )
    create_all_tables(resolved_engine)
    _STATE.engine = resolved_engine
    return resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SqlAlchemyKeyValueStore:
    """Key-value store persisted in the ``kv_entry`` table."""

    def __init__(
        self,
        engine: Engine | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        resolved = engine or _STATE.engine
        if resolved is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call rosterdash.adapters.sqlalchemy."
                "startup() before creating a store."
            )
        self._engine = resolved
        self._clock = clock

    def get(self, key: str) -> str | None:
        statement = select(kv_entry_table.c.value).where(kv_entry_table.c.key == key)
        try:
            with self._engine.connect() as connection:
                return connection.execute(statement).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise PersistenceReadError(f"Failed to read {key!r}") from exc

    def put(self, key: str, value: str) -> None:
        now = self._clock()
        try:
            with self._engine.begin() as connection:
                result = connection.execute(
                    update(kv_entry_table)
                    .where(kv_entry_table.c.key == key)
                    .values(value=value, updated_at=now)
                )
                if result.rowcount == 0:
                    connection.execute(
                        insert(kv_entry_table).values(key=key, value=value, updated_at=now)
                    )
        except SQLAlchemyError as exc:
            raise PersistenceWriteError(f"Failed to write {key!r}") from exc
        log.debug("Stored %s bytes under %s", len(value), key)

    def delete(self, key: str) -> None:
        try:
            with self._engine.begin() as connection:
                connection.execute(delete(kv_entry_table).where(kv_entry_table.c.key == key))
        except SQLAlchemyError as exc:
            raise PersistenceWriteError(f"Failed to delete {key!r}") from exc

    def updated_at(self, key: str) -> datetime | None:
        statement = select(kv_entry_table.c.updated_at).where(kv_entry_table.c.key == key)
        try:
            with self._engine.connect() as connection:
                return connection.execute(statement).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise PersistenceReadError(f"Failed to read {key!r}") from exc


if TYPE_CHECKING:
    _store_check: KeyValueStore = SqlAlchemyKeyValueStore()
