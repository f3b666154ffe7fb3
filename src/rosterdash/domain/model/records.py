"""Raw source records, before identity resolution and normalization."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(slots=True, frozen=True)
class EventContact:
    name: str | None = None
    email: str | None = None
    telegram_username: str | None = None
    telegram_id: object = None


@dataclass(slots=True, frozen=True)
class EventRecord:
    """One event from the live feed: contact info plus a nested detail blob."""

    contact: EventContact
    event_name: str | None = None
    percent: object = None
    group: str | None = None
    finished: bool = False
    details: Mapping[str, object] = field(default_factory=dict[str, object])


@dataclass(slots=True, frozen=True)
class SnapshotRow:
    """One flat row of the tabular snapshot. Every value is a string."""

    fields: Mapping[str, str]

    def get(self, name: str) -> str | None:
        """Return a stripped, non-empty value or ``None``."""
        value = self.fields.get(name)
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None


type RawSourceRecord = EventRecord | SnapshotRow
