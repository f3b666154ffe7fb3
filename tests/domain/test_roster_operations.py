from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from rosterdash.domain.model.enums import House, SourceKind
from rosterdash.domain.reconciliation.credentials import derive_login_code
from rosterdash.domain.reconciliation.overrides import OverrideStore
from rosterdash.domain.roster import (
    DEFAULT_CIRCLE_DESCRIPTION,
    STEALTH_ORGANIZATION_NAME,
    AuthReason,
    apply_override,
    authenticate,
    group_by_circle,
    list_entities,
)
from tests.helpers.roster import make_entity

if TYPE_CHECKING:
    from rosterdash.domain.model.roster import CanonicalEntity


@pytest.fixture
def entities() -> list[CanonicalEntity]:
    return [
        make_entity("1", organization_name="beta", house=House.VENTURE, progress_percent=20),
        make_entity("2", organization_name="Alpha", house=House.KARMA, progress_percent=80),
        make_entity("3", organization_name="gamma", house=House.VENTURE, progress_percent=50),
        make_entity("4", organization_name="Delta", house=None, progress_percent=10),
    ]


def test_authenticate_matches_derived_code(entities: list[CanonicalEntity]) -> None:
    result = authenticate(derive_login_code("3"), entities)

    assert result.matched is True
    assert result.reason is AuthReason.MATCHED
    assert result.entity is not None
    assert result.entity.identity == "3"


def test_authenticate_reports_no_match(entities: list[CanonicalEntity]) -> None:
    result = authenticate(derive_login_code("999"), entities)

    assert result.matched is False
    assert result.entity is None
    assert result.reason is AuthReason.NO_MATCH


@pytest.mark.parametrize("code", ["abcdef", 12345678, None])
def test_authenticate_reports_invalid_code(
    entities: list[CanonicalEntity], code: object
) -> None:
    entities[0].login_code = "abcdef"

    result = authenticate(code, entities)

    assert result.matched is False
    assert result.reason is AuthReason.INVALID_CODE


def test_list_entities_without_filter_keeps_order(entities: list[CanonicalEntity]) -> None:
    assert [entity.identity for entity in list_entities(entities)] == ["1", "2", "3", "4"]
    assert [entity.identity for entity in list_entities(entities, house="all")] == [
        "1",
        "2",
        "3",
        "4",
    ]


def test_list_entities_filters_by_house(entities: list[CanonicalEntity]) -> None:
    result = list_entities(entities, house="venture")

    assert [entity.identity for entity in result] == ["1", "3"]
    assert list_entities(entities, house=House.SIDE) == []


def test_list_entities_sorts_by_progress_descending(entities: list[CanonicalEntity]) -> None:
    result = list_entities(entities, sort="progress")

    assert [entity.progress_percent for entity in result] == [80, 50, 20, 10]


def test_list_entities_sorts_by_name_case_insensitively(
    entities: list[CanonicalEntity],
) -> None:
    result = list_entities(entities, sort="name")

    assert [entity.organization_name for entity in result] == ["Alpha", "beta", "Delta", "gamma"]


def test_list_entities_rejects_unknown_literals(entities: list[CanonicalEntity]) -> None:
    with pytest.raises(ValueError, match="house"):
        list_entities(entities, house="astronaut")
    with pytest.raises(ValueError, match="sort"):
        list_entities(entities, sort="height")


def test_group_by_circle_orders_naturally_and_defaults_group() -> None:
    entities = [
        make_entity("1", group_id="10"),
        make_entity("2", group_id="2"),
        make_entity("3", group_id=None),
        make_entity("4", group_id="2"),
    ]

    circles = group_by_circle(entities)

    assert [circle.group_id for circle in circles] == ["1", "2", "10"]
    assert [member.identity for member in circles[1].members] == ["2", "4"]
    assert circles[0].name == "Circle 1"
    assert circles[0].description == DEFAULT_CIRCLE_DESCRIPTION


def test_group_by_circle_members_partition_input() -> None:
    entities = [make_entity(str(index), group_id=str(index % 3)) for index in range(9)]

    circles = group_by_circle(entities)

    member_ids = sorted(member.identity for circle in circles for member in circle.members)
    assert member_ids == sorted(entity.identity for entity in entities)


def test_group_by_circle_uses_named_metadata() -> None:
    named = make_entity("2", group_id="1")
    named.group_name = "Night Owls"
    named.group_description = "Late builders"

    (circle,) = group_by_circle([make_entity("1", group_id="1"), named])

    assert circle.name == "Night Owls"
    assert circle.description == "Late builders"


def test_group_by_circle_masks_private_fields() -> None:
    stealthy = make_entity("1", stealth=True, contact_consent=False)

    (circle,) = group_by_circle([stealthy])
    (member,) = circle.members

    assert member.organization_name == STEALTH_ORGANIZATION_NAME
    assert member.website_url is None
    assert member.contact is None
    assert member.display_name == stealthy.display_name


def test_apply_override_returns_updated_entity(override_store: OverrideStore) -> None:
    base = make_entity("1", house=House.VENTURE)

    updated = apply_override(override_store, "1", {"house": "karma"}, base=base)

    assert updated.house is House.KARMA
    assert updated.organization_name == base.organization_name
    record = override_store.get("1")
    assert record is not None
    assert record.fields == {"house": "karma"}


def test_apply_override_merges_successive_edits(override_store: OverrideStore) -> None:
    base = make_entity("1")

    apply_override(override_store, "1", {"stealth": True}, base=base)
    updated = apply_override(override_store, "1", {"bio": "hi"}, base=base)

    assert updated.stealth is True
    assert updated.bio == "hi"


def test_apply_override_without_base_builds_override_entity(
    override_store: OverrideStore,
) -> None:
    updated = apply_override(override_store, "42", {"startup_name": "Fresh"})

    assert updated.identity == "42"
    assert updated.organization_name == "Fresh"
    assert updated.source is SourceKind.OVERRIDE
