from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from rosterdash.adapters.memory import InMemoryKeyValueStore
from rosterdash.adapters.sqlalchemy import create_all_tables, shutdown
from rosterdash.domain.reconciliation.overrides import OverrideStore
from tests.helpers.roster import FIXED_NOW

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture(autouse=True)
def _reset_sqlalchemy_adapter() -> Iterator[None]:
    yield
    shutdown()


@pytest.fixture
def memory_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def override_store(memory_store: InMemoryKeyValueStore) -> OverrideStore:
    return OverrideStore(memory_store, clock=lambda: FIXED_NOW)
