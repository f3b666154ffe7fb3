"""In-memory key-value store."""

from __future__ import annotations

from typing import TYPE_CHECKING


class InMemoryKeyValueStore:
    """Process-local store; nothing survives a restart."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def put(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._values


if TYPE_CHECKING:
    from rosterdash.domain.ports.persistence import KeyValueStore

    _store_check: KeyValueStore = InMemoryKeyValueStore()
