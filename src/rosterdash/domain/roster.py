"""Read-side roster operations over reconciled entities.

Everything here is pure: callers pass in the entities from the latest
reconciliation pass and get plain values back. The application layer wires
these to a context holding the sources and the override store.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from rosterdash.domain.errors import InvalidCredentialInputError
from rosterdash.domain.model.enums import House
from rosterdash.domain.reconciliation.credentials import find_entity_for_code
from rosterdash.domain.reconciliation.merge import apply_override as merge_override
from rosterdash.domain.reconciliation.merge import entity_from_override
from rosterdash.domain.reconciliation.normalize import normalize_house

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from rosterdash.domain.model.roster import CanonicalEntity, ContactChannel, IdentityKey
    from rosterdash.domain.reconciliation.overrides import OverrideStore

log = logging.getLogger(__name__)

ALL_HOUSES: Final[str] = "all"
DEFAULT_GROUP_ID: Final[str] = "1"
DEFAULT_CIRCLE_DESCRIPTION: Final[str] = (
    "A supportive peer group for collaborative learning and accountability."
)
STEALTH_ORGANIZATION_NAME: Final[str] = "Stealth Startup"

_NATURAL_CHUNK = re.compile(r"(\d+)")


class AuthReason(StrEnum):
    MATCHED = "matched"
    NO_MATCH = "no_match"
    INVALID_CODE = "invalid_code"


@dataclass(slots=True, frozen=True)
class AuthResult:
    matched: bool
    entity: CanonicalEntity | None = None
    reason: AuthReason = AuthReason.NO_MATCH


class SortKey(StrEnum):
    PROGRESS = "progress"
    NAME = "name"


@dataclass(slots=True, frozen=True)
class CircleMember:
    """What a fellow circle member may see about an entity."""

    identity: IdentityKey
    display_name: str
    organization_name: str
    house: House | None
    progress_percent: int
    website_url: str | None
    contact: ContactChannel | None
    check_ins: tuple[bool, ...]


@dataclass(slots=True)
class Circle:
    group_id: str
    name: str
    description: str
    members: list[CircleMember] = field(default_factory=list[CircleMember])


def authenticate(code: object, entities: Iterable[CanonicalEntity]) -> AuthResult:
    """Match a login code against ``entities``.

    A code that fails validation is reported as ``invalid_code`` rather than
    raised, and an unknown code is simply ``no_match``.
    """

    try:
        entity = find_entity_for_code(code, entities)
    except InvalidCredentialInputError as exc:
        log.info("Rejected login code: %s", exc)
        return AuthResult(matched=False, reason=AuthReason.INVALID_CODE)
    if entity is None:
        return AuthResult(matched=False, reason=AuthReason.NO_MATCH)
    return AuthResult(matched=True, entity=entity, reason=AuthReason.MATCHED)


def _parse_house_filter(house: str | House | None) -> House | None:
    if house is None or house == ALL_HOUSES:
        return None
    if isinstance(house, House):
        return house
    normalized = normalize_house(house)
    if normalized is None:
        allowed = ", ".join([ALL_HOUSES, *(member.value for member in House)])
        raise ValueError(f"Unknown house filter {house!r}; expected one of {allowed}")
    return normalized


def _parse_sort_key(sort: str | SortKey | None) -> SortKey | None:
    if sort is None:
        return None
    try:
        return SortKey(sort)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in SortKey)
        raise ValueError(f"Unknown sort key {sort!r}; expected one of {allowed}") from exc


def list_entities(
    entities: Iterable[CanonicalEntity],
    *,
    house: str | House | None = None,
    sort: str | SortKey | None = None,
) -> list[CanonicalEntity]:
    """Filter by house and optionally sort. Without a sort key, input order is kept."""

    house_filter = _parse_house_filter(house)
    sort_key = _parse_sort_key(sort)

    selected = [
        entity for entity in entities if house_filter is None or entity.house is house_filter
    ]
    match sort_key:
        case SortKey.PROGRESS:
            selected.sort(key=lambda entity: entity.progress_percent, reverse=True)
        case SortKey.NAME:
            selected.sort(key=lambda entity: entity.organization_name.casefold())
        case None:
            pass
    return selected


def _natural_key(value: str) -> tuple[tuple[int, int | str], ...]:
    return tuple(
        (0, int(chunk)) if chunk.isdigit() else (1, chunk.casefold())
        for chunk in _NATURAL_CHUNK.split(value)
        if chunk
    )


def circle_member(entity: CanonicalEntity) -> CircleMember:
    """Project an entity for circle display, honouring its privacy flags."""

    return CircleMember(
        identity=entity.identity,
        display_name=entity.display_name,
        organization_name=(
            STEALTH_ORGANIZATION_NAME if entity.stealth else entity.organization_name
        ),
        house=entity.house,
        progress_percent=entity.progress_percent,
        website_url=None if entity.stealth else entity.website_url,
        contact=entity.contact if entity.contact_consent else None,
        check_ins=entity.check_ins,
    )


def group_by_circle(entities: Iterable[CanonicalEntity]) -> list[Circle]:
    """Partition entities into circles ordered by group id.

    Members keep their input order inside each circle. The circle name and
    description come from the first member that carries one.
    """

    circles: dict[str, Circle] = {}
    for entity in entities:
        group_id = entity.group_id or DEFAULT_GROUP_ID
        circle = circles.get(group_id)
        if circle is None:
            circle = Circle(
                group_id=group_id,
                name=entity.group_name or f"Circle {group_id}",
                description=entity.group_description or DEFAULT_CIRCLE_DESCRIPTION,
            )
            circles[group_id] = circle
        else:
            if entity.group_name and circle.name == f"Circle {group_id}":
                circle.name = entity.group_name
            if entity.group_description and circle.description == DEFAULT_CIRCLE_DESCRIPTION:
                circle.description = entity.group_description
        circle.members.append(circle_member(entity))

    return [circles[key] for key in sorted(circles, key=_natural_key)]


def apply_override(
    store: OverrideStore,
    identity: IdentityKey,
    partial_fields: Mapping[str, object],
    *,
    base: CanonicalEntity | None = None,
) -> CanonicalEntity:
    """Merge ``partial_fields`` into the stored override and return the updated entity.

    ``base`` is the current reconciled entity for ``identity``, if the sources
    know it; otherwise the entity is built from the override alone.
    """

    record = store.merge(identity, partial_fields)
    log.info("Applied override identity=%s fields=%s", identity, sorted(partial_fields))
    if base is None:
        return entity_from_override(record)
    return merge_override(base, record)
