"""Error taxonomy for the roster reconciliation core.

"Not found" conditions (unknown identity, no credential match, empty filter
result) are never errors; they surface as ``None`` or empty results.
"""

from __future__ import annotations


class RosterError(Exception):
    """Base class for roster domain errors."""


class SourceUnavailableError(RosterError):
    """The live feed or the snapshot could not be fetched or parsed."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source} unavailable: {message}")
        self.source = source


class ReconciliationUnavailableError(RosterError):
    """Neither the live feed nor the snapshot could be obtained."""


class MalformedRecordError(RosterError):
    """A single raw record cannot be turned into a canonical entity."""

    def __init__(self, message: str, *, index: int | None = None) -> None:
        super().__init__(message)
        self.index = index


class InvalidCredentialInputError(RosterError, ValueError):
    """A login code was rejected before any comparison took place."""


class PersistenceError(RosterError):
    """A key-value store backend failed."""


class PersistenceReadError(PersistenceError):
    """Reading from the durable store failed."""


class PersistenceWriteError(PersistenceError):
    """Writing to the durable store failed; the in-memory copy stays authoritative."""
