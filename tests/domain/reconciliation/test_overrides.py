from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

import pytest

from rosterdash.adapters.memory import InMemoryKeyValueStore
from rosterdash.domain.reconciliation.overrides import DEFAULT_STORAGE_KEY, OverrideStore
from tests.helpers.roster import FIXED_NOW, FlakyKeyValueStore


def test_put_and_get_round_trip(override_store: OverrideStore) -> None:
    record = override_store.put("7", {"house": "karma", "progress_percent": 30})

    assert override_store.get("7") == record
    assert record.last_modified == FIXED_NOW
    assert record.fields == {"house": "karma", "progress_percent": 30}


def test_get_unknown_identity_returns_none(override_store: OverrideStore) -> None:
    assert override_store.get("missing") is None
    assert "missing" not in override_store


def test_put_replaces_whole_record(override_store: OverrideStore) -> None:
    override_store.put("7", {"house": "karma", "bio": "hello"})
    override_store.put("7", {"house": "side"})

    record = override_store.get("7")
    assert record is not None
    assert record.fields == {"house": "side"}


def test_merge_preserves_untouched_fields(override_store: OverrideStore) -> None:
    override_store.put("7", {"house": "karma", "stealth": True})

    merged = override_store.merge("7", {"bio": "new bio"})

    assert merged.fields == {"house": "karma", "stealth": True, "bio": "new bio"}


def test_merge_creates_missing_record(override_store: OverrideStore) -> None:
    merged = override_store.merge("8", {"stealth": True})

    assert merged.fields == {"stealth": True}
    assert len(override_store) == 1


def test_put_rejects_empty_identity(override_store: OverrideStore) -> None:
    with pytest.raises(ValueError, match="non-empty"):
        override_store.put("", {"house": "karma"})


def test_put_rejects_unserializable_fields(override_store: OverrideStore) -> None:
    with pytest.raises(ValueError, match="JSON serializable"):
        override_store.put("7", {"when": datetime.now(UTC)})


def test_blob_layout_uses_epoch_milliseconds(memory_store: InMemoryKeyValueStore) -> None:
    store = OverrideStore(memory_store, clock=lambda: FIXED_NOW)
    store.put("7", {"house": "karma"})

    blob = memory_store.get(DEFAULT_STORAGE_KEY)
    assert blob is not None
    assert json.loads(blob) == {
        "7": {"fields": {"house": "karma"}, "lastModified": int(FIXED_NOW.timestamp() * 1000)}
    }


def test_records_survive_a_new_store_instance(memory_store: InMemoryKeyValueStore) -> None:
    OverrideStore(memory_store, clock=lambda: FIXED_NOW).put("7", {"stealth": True})

    reloaded = OverrideStore(memory_store)
    record = reloaded.get("7")

    assert record is not None
    assert record.fields == {"stealth": True}
    assert record.last_modified == FIXED_NOW


def test_clear_single_identity(override_store: OverrideStore) -> None:
    override_store.put("7", {"house": "karma"})
    override_store.put("8", {"house": "side"})

    override_store.clear("7")

    assert set(override_store.all()) == {"8"}


def test_clear_all_removes_blob(memory_store: InMemoryKeyValueStore) -> None:
    store = OverrideStore(memory_store)
    store.put("7", {"house": "karma"})

    store.clear()

    assert store.all() == {}
    assert DEFAULT_STORAGE_KEY not in memory_store


def test_write_failure_keeps_memory_copy(caplog: pytest.LogCaptureFixture) -> None:
    backend = FlakyKeyValueStore(fail_writes=True)
    store = OverrideStore(backend)

    with caplog.at_level(logging.WARNING):
        record = store.put("7", {"house": "karma"})

    assert store.get("7") == record
    assert backend.writes == 1
    assert "Failed to persist" in caplog.text


def test_read_failure_starts_empty(caplog: pytest.LogCaptureFixture) -> None:
    backend = FlakyKeyValueStore(fail_reads=True)
    store = OverrideStore(backend)

    with caplog.at_level(logging.WARNING):
        assert store.all() == {}

    assert "starting empty" in caplog.text


@pytest.mark.parametrize(
    "blob",
    [
        "not json",
        "[1, 2]",
        json.dumps({"7": "oops"}),
        json.dumps({"7": {"lastModified": 1}}),
        json.dumps({"7": {"fields": {}, "lastModified": "yesterday"}}),
    ],
)
def test_unreadable_blob_is_discarded(blob: str) -> None:
    store = OverrideStore(InMemoryKeyValueStore({DEFAULT_STORAGE_KEY: blob}))

    assert store.all() == {}


def test_custom_storage_key(memory_store: InMemoryKeyValueStore) -> None:
    OverrideStore(memory_store, storage_key="other").put("7", {"bio": "x"})

    assert memory_store.get("other") is not None
    assert memory_store.get(DEFAULT_STORAGE_KEY) is None
