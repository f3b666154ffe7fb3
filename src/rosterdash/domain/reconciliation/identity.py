"""Identity resolution for raw source records.

The resolver is total: a record without any usable candidate key still gets a
positional fallback identity. Those fallbacks (``1000 + index`` for live events,
``startup_<index>`` for snapshot rows) are only stable while the source keeps
its ordering; a reordered feed can hand the same fallback to a different
founder across passes.
"""

from __future__ import annotations

import logging
from functools import singledispatch
from typing import Final

from rosterdash.domain.model.records import EventRecord, SnapshotRow
from rosterdash.domain.model.roster import IdentityKey  # noqa: TC001  # needed at runtime

log = logging.getLogger(__name__)

LIVE_FALLBACK_BASE: Final[int] = 1000
SNAPSHOT_FALLBACK_PREFIX: Final[str] = "startup_"


def parse_numeric_id(raw: object) -> int | None:
    """Return ``raw`` as a non-negative integer id, or ``None``."""

    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, int):
        return raw if raw >= 0 else None
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() and raw >= 0 else None
    if isinstance(raw, str):
        stripped = raw.strip()
        if stripped.isdecimal():
            return int(stripped)
        try:
            value = float(stripped)
        except ValueError:
            return None
        return int(value) if value.is_integer() and value >= 0 else None
    return None


def resolve_identity(record: object, index: int) -> IdentityKey:
    """Assign a stable identity key to ``record`` at position ``index``."""

    return _resolve(record, index)


@singledispatch
def _resolve(record: object, index: int) -> IdentityKey:
    raise TypeError(f"Cannot resolve identity for {type(record).__name__} at index {index}")


@_resolve.register
def _(record: EventRecord, index: int) -> IdentityKey:
    telegram_id = parse_numeric_id(record.contact.telegram_id)
    if telegram_id is not None:
        return str(telegram_id)
    log.debug("Event at index %s has no numeric telegram id; using positional identity", index)
    return str(LIVE_FALLBACK_BASE + index)


@_resolve.register
def _(record: SnapshotRow, index: int) -> IdentityKey:
    npid = parse_numeric_id(record.get("npid"))
    if npid is not None:
        return str(npid)
    generic_id = record.get("id")
    if generic_id is not None:
        return generic_id
    log.debug("Snapshot row %s has no identifier; using positional identity", index)
    return f"{SNAPSHOT_FALLBACK_PREFIX}{index}"
