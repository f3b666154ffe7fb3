"""Locally authored entity snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from rosterdash.domain.model.roster import IdentityKey


@dataclass(slots=True, frozen=True)
class OverrideRecord:
    """Complete alternate snapshot of an entity's fields, not a diff."""

    identity: IdentityKey
    last_modified: datetime
    fields: dict[str, object] = field(default_factory=dict[str, object])

    def has(self, name: str) -> bool:
        return name in self.fields
