"""Override store: locally edited entity snapshots that survive source refreshes.

Each write replaces the whole record for an identity. ``merge`` gives patch
semantics on top of that by reading before writing, so callers never have to
read-modify-write themselves.

All records are serialized together as one JSON blob under a fixed key of a
``KeyValueStore``. Persistence is opportunistic: when the durable write fails
the in-memory copy stays authoritative for the session and the failure is only
logged.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final, cast

from rosterdash.domain.errors import PersistenceReadError, PersistenceWriteError
from rosterdash.domain.model.overrides import OverrideRecord

if TYPE_CHECKING:
    from rosterdash.domain.model.roster import IdentityKey
    from rosterdash.domain.ports.persistence import KeyValueStore

log = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY: Final[str] = "roster_overrides_v2"

type Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _to_epoch_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp() * 1000)


def _from_epoch_ms(value: object) -> datetime:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValueError(f"lastModified must be epoch milliseconds, got {value!r}")
    return datetime.fromtimestamp(value / 1000, tz=UTC)


def _ensure_serializable(identity: IdentityKey, fields: Mapping[str, object]) -> dict[str, object]:
    copied = dict(fields)
    try:
        json.dumps(copied)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Override fields for {identity} must be JSON serializable") from exc
    return copied


class OverrideStore:
    """Keyed store of complete locally edited entity snapshots."""

    def __init__(
        self,
        backend: KeyValueStore,
        *,
        storage_key: str = DEFAULT_STORAGE_KEY,
        clock: Clock = _utcnow,
    ) -> None:
        self._backend = backend
        self._storage_key = storage_key
        self._clock = clock
        self._records: dict[IdentityKey, OverrideRecord] = {}
        self._loaded = False

    def get(self, identity: IdentityKey) -> OverrideRecord | None:
        self._load()
        return self._records.get(identity)

    def put(self, identity: IdentityKey, fields: Mapping[str, object]) -> OverrideRecord:
        """Replace the stored snapshot for ``identity`` with ``fields``."""

        if not identity:
            raise ValueError("Override identity must be non-empty")
        self._load()
        record = OverrideRecord(
            identity=identity,
            fields=_ensure_serializable(identity, fields),
            last_modified=self._clock(),
        )
        self._records[identity] = record
        log.debug("Saved override identity=%s fields=%s", identity, sorted(record.fields))
        self._persist()
        return record

    def merge(self, identity: IdentityKey, partial_fields: Mapping[str, object]) -> OverrideRecord:
        """Shallow-merge ``partial_fields`` over the current snapshot and store the result."""

        current = self.get(identity)
        merged: dict[str, object] = dict(current.fields) if current is not None else {}
        merged.update(partial_fields)
        return self.put(identity, merged)

    def clear(self, identity: IdentityKey | None = None) -> None:
        """Drop one override, or every override when ``identity`` is ``None``."""

        self._load()
        if identity is None:
            self._records.clear()
            try:
                self._backend.delete(self._storage_key)
            except PersistenceWriteError:
                log.warning("Failed to clear persisted overrides", exc_info=True)
            return
        if self._records.pop(identity, None) is not None:
            self._persist()

    def all(self) -> dict[IdentityKey, OverrideRecord]:
        self._load()
        return dict(self._records)

    def __contains__(self, identity: object) -> bool:
        self._load()
        return identity in self._records

    def __len__(self) -> int:
        self._load()
        return len(self._records)

    def _load(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        try:
            blob = self._backend.get(self._storage_key)
        except PersistenceReadError:
            log.warning("Failed to read persisted overrides; starting empty", exc_info=True)
            return
        if blob is None:
            return
        try:
            self._records = _decode(blob)
        except (ValueError, TypeError, KeyError):
            log.warning("Discarding unreadable override blob under %s", self._storage_key)
            self._records = {}
            return
        log.info("Loaded %s overrides from %s", len(self._records), self._storage_key)

    def _persist(self) -> None:
        blob = _encode(self._records)
        try:
            self._backend.put(self._storage_key, blob)
        except PersistenceWriteError:
            log.warning(
                "Failed to persist %s overrides; keeping in-memory copy",
                len(self._records),
                exc_info=True,
            )


def _encode(records: Mapping[IdentityKey, OverrideRecord]) -> str:
    payload = {
        identity: {
            "fields": record.fields,
            "lastModified": _to_epoch_ms(record.last_modified),
        }
        for identity, record in records.items()
    }
    return json.dumps(payload, sort_keys=True)


def _decode(blob: str) -> dict[IdentityKey, OverrideRecord]:
    raw = json.loads(blob)
    if not isinstance(raw, dict):
        raise ValueError("Override blob must be a JSON object")

    records: dict[IdentityKey, OverrideRecord] = {}
    for identity, entry in cast(dict[str, object], raw).items():
        if not isinstance(entry, dict):
            raise ValueError(f"Override entry for {identity} must be an object")
        entry_map = cast(dict[str, object], entry)
        fields = entry_map["fields"]
        if not isinstance(fields, dict):
            raise ValueError(f"Override fields for {identity} must be an object")
        records[identity] = OverrideRecord(
            identity=identity,
            fields=cast(dict[str, object], fields),
            last_modified=_from_epoch_ms(entry_map.get("lastModified", 0)),
        )
    return records
