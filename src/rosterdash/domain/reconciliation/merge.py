"""Reconciliation merger: raw source records plus overrides into canonical entities.

One pass works like this:

1. pick the base source: the live feed when it returned records, otherwise the
   snapshot (the two are never merged with each other)
2. resolve an identity for every base record and normalize its fields
3. lay the override for that identity, if any, over the provisional entity
4. append entities that only exist in the override store
5. duplicate identities inside the base batch collapse to the last occurrence

A source that could not be fetched is passed as ``None``; an empty sequence
means the source answered with nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import TYPE_CHECKING, Final, cast

from rosterdash.domain.errors import MalformedRecordError, ReconciliationUnavailableError
from rosterdash.domain.model.enums import ProgressUnit, SourceKind
from rosterdash.domain.model.records import EventContact, EventRecord, SnapshotRow
from rosterdash.domain.model.roster import (
    CONTACT_FIELDS,
    DEFAULT_ORGANIZATION_NAME,
    ENTITY_FIELDS,
    PRIVACY_FIELDS,
    CanonicalEntity,
    ContactChannel,
)

from .credentials import derive_login_code
from .identity import resolve_identity
from .normalize import (
    normalize_boolean,
    normalize_flag,
    normalize_group_id,
    normalize_house,
    normalize_progress,
    normalize_text,
)

if TYPE_CHECKING:
    from rosterdash.domain.model.overrides import OverrideRecord
    from rosterdash.domain.model.roster import IdentityKey

    from .overrides import OverrideStore

log = logging.getLogger(__name__)

DEFAULT_CIRCLE_SIZE: Final[int] = 5

# Source and legacy spellings accepted in override snapshots.
FIELD_ALIASES: Final[dict[str, str]] = {
    "contact_me": "contact_consent",
    "startup_name": "organization_name",
    "founder_name": "display_name",
    "username": "display_name",
    "website": "website_url",
    "progress": "progress_percent",
    "circle": "group_id",
    "circle_id": "group_id",
    "circle_name": "group_name",
    "circle_description": "group_description",
    "founder_email": "email",
    "founder_telegram": "telegram",
    "telegram_id": "telegram",
    "founder_linkedin_url": "linkedin_url",
}

_IGNORED_OVERRIDE_FIELDS: Final[frozenset[str]] = frozenset({"identity", "id", "npid", "source"})

# Absent or blank privacy flags read the same as in the sources.
_PRIVACY_DEFAULTS: Final[dict[str, bool]] = {"stealth": False, "contact_consent": True}

_EVENT_DETAIL_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "startup_name",
        "website",
        "founder_linkedin_url",
        "stealth",
        "contact_me",
        "circle",
        "circle_name",
        "circle_description",
        "bio",
        "motivation",
        "traction",
        "current_progress",
    }
)

_SNAPSHOT_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "npid",
        "id",
        "name",
        "founder_name",
        "startup_name",
        "website",
        "founder_email",
        "founder_telegram",
        "founder_linkedin_url",
        "house",
        "current_progress",
        "progress",
        "stealth",
        "contact_me",
        "circle",
        "circle_name",
        "circle_description",
        "bio",
        "motivation",
        "traction",
        "login_code",
    }
)


def select_base_source(
    live_records: Sequence[object] | None,
    snapshot_records: Sequence[object] | None,
) -> tuple[SourceKind, Sequence[object]]:
    """Choose which source acts as the base for this pass."""

    if live_records:
        return SourceKind.LIVE, live_records
    if snapshot_records is not None:
        return SourceKind.SNAPSHOT, snapshot_records
    if live_records is not None:
        return SourceKind.LIVE, live_records
    raise ReconciliationUnavailableError("Neither the live feed nor the snapshot is available")


def reconcile(
    live_records: Sequence[object] | None,
    snapshot_records: Sequence[object] | None,
    overrides: OverrideStore | None,
    *,
    circle_size: int = DEFAULT_CIRCLE_SIZE,
) -> list[CanonicalEntity]:
    """Run one reconciliation pass and return the canonical entities.

    Passing ``None`` for ``overrides`` yields the bare source view.
    """

    kind, records = select_base_source(live_records, snapshot_records)

    provisional: dict[IdentityKey, CanonicalEntity] = {}
    skipped = 0
    for index, record in enumerate(records):
        try:
            entity = build_entity(kind, record, index, circle_size=circle_size)
        except MalformedRecordError as exc:
            skipped += 1
            log.warning("Skipping malformed %s record at index %s: %s", kind, index, exc)
            continue
        if entity.identity in provisional:
            log.warning(
                "Identity collision for %s in %s batch at index %s; last occurrence wins",
                entity.identity,
                kind,
                index,
            )
        provisional[entity.identity] = entity

    override_records = overrides.all() if overrides is not None else {}
    entities = [
        apply_override(entity, override_records[identity])
        if identity in override_records
        else entity
        for identity, entity in provisional.items()
    ]
    override_only = [
        entity_from_override(record)
        for identity, record in override_records.items()
        if identity not in provisional
    ]
    entities.extend(override_only)

    log.info(
        "Reconciled %s entities from %s (%s records, %s skipped, %s override-only)",
        len(entities),
        kind,
        len(records),
        skipped,
        len(override_only),
    )
    return entities


def build_entity(
    kind: SourceKind,
    record: object,
    index: int,
    *,
    circle_size: int = DEFAULT_CIRCLE_SIZE,
) -> CanonicalEntity:
    """Resolve and normalize one raw record into a provisional entity."""

    try:
        if kind is SourceKind.LIVE:
            if not isinstance(record, EventRecord):
                raise MalformedRecordError(
                    f"expected an event record, got {type(record).__name__}", index=index
                )
            return entity_from_event(record, index, circle_size=circle_size)
        row = _as_snapshot_row(record, index)
        return entity_from_snapshot(row, index)
    except (TypeError, ValueError) as exc:
        raise MalformedRecordError(str(exc), index=index) from exc


def entity_from_event(
    record: EventRecord,
    index: int,
    *,
    circle_size: int = DEFAULT_CIRCLE_SIZE,
) -> CanonicalEntity:
    if not isinstance(record.contact, EventContact):
        raise MalformedRecordError("event has no contact block", index=index)
    if not isinstance(record.details, Mapping):
        raise MalformedRecordError("event details must be an object", index=index)

    identity = resolve_identity(record, index)
    details = cast(Mapping[str, object], record.details)
    contact = record.contact

    if record.percent is not None:
        progress = normalize_progress(record.percent, unit=ProgressUnit.PERCENT)
    else:
        progress = normalize_progress(details.get("current_progress"))

    return CanonicalEntity(
        identity=identity,
        display_name=normalize_text(contact.name) or f"User {identity}",
        organization_name=(
            normalize_text(details.get("startup_name"))
            or normalize_text(record.event_name)
            or DEFAULT_ORGANIZATION_NAME
        ),
        house=normalize_house(record.group),
        progress_percent=progress,
        stealth=normalize_boolean(details.get("stealth")),
        contact_consent=normalize_flag(details.get("contact_me"), default=True),
        website_url=normalize_text(details.get("website")),
        contact=ContactChannel(
            email=normalize_text(contact.email),
            telegram=(
                normalize_text(contact.telegram_username) or normalize_text(contact.telegram_id)
            ),
            linkedin_url=normalize_text(details.get("founder_linkedin_url")),
        ),
        group_id=(
            normalize_group_id(details.get("circle")) or str(index // max(circle_size, 1) + 1)
        ),
        group_name=normalize_text(details.get("circle_name")),
        group_description=normalize_text(details.get("circle_description")),
        bio=normalize_text(details.get("bio")),
        motivation=normalize_text(details.get("motivation")),
        traction=normalize_text(details.get("traction")),
        login_code=derive_login_code(identity),
        source=SourceKind.LIVE,
        extra=_passthrough(details, _EVENT_DETAIL_FIELDS),
    )


def entity_from_snapshot(row: SnapshotRow, index: int) -> CanonicalEntity:
    identity = resolve_identity(row, index)

    fraction = row.get("current_progress")
    if fraction is not None:
        progress = normalize_progress(fraction, unit=ProgressUnit.FRACTION)
    else:
        progress = normalize_progress(row.get("progress"), unit=ProgressUnit.PERCENT)

    return CanonicalEntity(
        identity=identity,
        display_name=row.get("founder_name") or row.get("name") or f"User {identity}",
        organization_name=row.get("startup_name") or row.get("name") or DEFAULT_ORGANIZATION_NAME,
        house=normalize_house(row.get("house")),
        progress_percent=progress,
        stealth=normalize_boolean(row.get("stealth")),
        contact_consent=normalize_flag(row.get("contact_me"), default=True),
        website_url=row.get("website"),
        contact=ContactChannel(
            email=row.get("founder_email"),
            telegram=row.get("founder_telegram"),
            linkedin_url=row.get("founder_linkedin_url"),
        ),
        group_id=normalize_group_id(row.get("circle")),
        group_name=row.get("circle_name"),
        group_description=row.get("circle_description"),
        bio=row.get("bio"),
        motivation=row.get("motivation"),
        traction=row.get("traction"),
        login_code=row.get("login_code") or derive_login_code(identity),
        source=SourceKind.SNAPSHOT,
        extra=_passthrough(row.fields, _SNAPSHOT_FIELDS),
    )


def entity_from_override(record: OverrideRecord) -> CanonicalEntity:
    """Build an entity for an identity that no source currently reports."""

    base = CanonicalEntity(
        identity=record.identity,
        display_name=f"User {record.identity}",
        login_code=derive_login_code(record.identity),
        source=SourceKind.OVERRIDE,
    )
    return apply_override(base, record)


def canonical_field_name(name: str) -> str:
    return FIELD_ALIASES.get(name, name)


def apply_override(base: CanonicalEntity, record: OverrideRecord) -> CanonicalEntity:
    """Lay ``record`` over ``base`` field by field.

    Privacy flags come from the override whenever it carries them. A blank or
    ``None`` flag reads as it would in a source row: not stealth, consenting to
    contact. Every other field only replaces the base value when the override
    sets it to something other than ``None``, so fresher source data is not
    masked by stale override values.
    """

    updates: dict[str, object] = {}
    contact_updates: dict[str, str | None] = {}
    extra = dict(base.extra)

    for raw_name, value in record.fields.items():
        name = canonical_field_name(raw_name)
        if name in _IGNORED_OVERRIDE_FIELDS:
            continue
        if name in PRIVACY_FIELDS:
            updates[name] = normalize_flag(value, default=_PRIVACY_DEFAULTS[name])
            continue
        if value is None:
            continue
        if name == "extra":
            extra.update(_passthrough(value, frozenset()) if isinstance(value, Mapping) else {})
        elif name in CONTACT_FIELDS:
            contact_updates[name] = normalize_text(value)
        elif name in ENTITY_FIELDS:
            coerced = _coerce_override_value(name, value)
            if coerced is not _SKIP:
                updates[name] = coerced
        else:
            text = _passthrough_value(value)
            if text is not None:
                extra[name] = text

    contact = replace(base.contact, **contact_updates) if contact_updates else base.contact
    merged = replace(base, contact=contact, extra=extra, **updates)
    if not merged.login_code:
        merged = replace(merged, login_code=derive_login_code(merged.identity))
    return merged


_SKIP: Final = object()


def _coerce_override_value(name: str, value: object) -> object:
    match name:
        case "house":
            return normalize_house(value)
        case "progress_percent":
            return normalize_progress(value, unit=ProgressUnit.PERCENT)
        case "group_id":
            return normalize_group_id(value)
        case "display_name" | "organization_name" | "login_code":
            text = normalize_text(value)
            return text if text is not None else _SKIP
        case _:
            return normalize_text(value)


def _as_snapshot_row(record: object, index: int) -> SnapshotRow:
    if isinstance(record, SnapshotRow):
        if not isinstance(record.fields, Mapping):
            raise MalformedRecordError("snapshot row fields must be a mapping", index=index)
        return record
    if isinstance(record, Mapping):
        mapping = cast(Mapping[object, object], record)
        return SnapshotRow(
            fields={
                str(key): str(value)
                for key, value in mapping.items()
                if key is not None and value is not None
            }
        )
    raise MalformedRecordError(f"expected a snapshot row, got {type(record).__name__}", index=index)


def _passthrough_value(value: object) -> str | None:
    if isinstance(value, list | tuple):
        items = [
            text
            for text in (normalize_text(item) for item in cast(Sequence[object], value))
            if text
        ]
        return ", ".join(items) or None
    return normalize_text(value)


def _passthrough(values: Mapping[object, object], consumed: frozenset[str]) -> dict[str, str]:
    extra: dict[str, str] = {}
    for key, value in values.items():
        name = str(key)
        if name in consumed:
            continue
        text = _passthrough_value(value)
        if text is not None:
            extra[name] = text
    return extra
