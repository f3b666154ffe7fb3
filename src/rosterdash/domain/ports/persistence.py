"""Ports for persisting local state."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal string blob store.

    Implementations raise ``PersistenceReadError`` / ``PersistenceWriteError``
    instead of leaking backend exceptions.
    """

    def get(self, key: str) -> str | None: ...

    def put(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


__all__ = ["KeyValueStore"]
