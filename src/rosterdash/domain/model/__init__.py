"""Public domain model surface."""

from __future__ import annotations

from rosterdash.domain.model.enums import House, ProgressUnit, SourceKind
from rosterdash.domain.model.overrides import OverrideRecord
from rosterdash.domain.model.records import (
    EventContact,
    EventRecord,
    RawSourceRecord,
    SnapshotRow,
)
from rosterdash.domain.model.roster import (
    CHECK_IN_COUNT,
    CONTACT_FIELDS,
    DEFAULT_ORGANIZATION_NAME,
    ENTITY_FIELDS,
    PRIVACY_FIELDS,
    CanonicalEntity,
    ContactChannel,
    IdentityKey,
)

__all__ = [
    "CHECK_IN_COUNT",
    "CONTACT_FIELDS",
    "DEFAULT_ORGANIZATION_NAME",
    "ENTITY_FIELDS",
    "PRIVACY_FIELDS",
    "CanonicalEntity",
    "ContactChannel",
    "EventContact",
    "EventRecord",
    "House",
    "IdentityKey",
    "OverrideRecord",
    "ProgressUnit",
    "RawSourceRecord",
    "SnapshotRow",
    "SourceKind",
]
