from __future__ import annotations

import logging

import pytest

from rosterdash.domain.errors import ReconciliationUnavailableError
from rosterdash.domain.model.enums import House, SourceKind
from rosterdash.domain.model.roster import CHECK_IN_COUNT
from rosterdash.domain.reconciliation.credentials import derive_login_code
from rosterdash.domain.reconciliation.merge import (
    apply_override,
    entity_from_event,
    entity_from_snapshot,
    reconcile,
    select_base_source,
)
from rosterdash.domain.reconciliation.overrides import OverrideStore
from tests.helpers.roster import make_event, make_row


def test_entity_from_event_maps_fields() -> None:
    event = make_event(
        telegram_id=1750,
        percent=64.5,
        group="[Karma House]",
        startup_name="Tidy Oceans",
        website="https://tidy.example",
        founder_linkedin_url="https://linkedin.example/ada",
        bio="Cleaning up",
        github_repos=["tidy/core", "tidy/web"],
    )

    entity = entity_from_event(event, 0)

    assert entity.identity == "1750"
    assert entity.display_name == "Ada Founder"
    assert entity.organization_name == "Tidy Oceans"
    assert entity.house is House.KARMA
    assert entity.progress_percent == 65
    assert entity.website_url == "https://tidy.example"
    assert entity.contact.email == "ada@example.com"
    assert entity.contact.telegram == "ada"
    assert entity.contact.linkedin_url == "https://linkedin.example/ada"
    assert entity.contact_consent is True
    assert entity.stealth is False
    assert entity.bio == "Cleaning up"
    assert entity.login_code == derive_login_code("1750")
    assert entity.source is SourceKind.LIVE
    assert entity.extra == {"github_repos": "tidy/core, tidy/web"}


def test_entity_from_event_defaults() -> None:
    event = make_event(telegram_id=None, name=None, event_name=None, percent=None, group=None)

    entity = entity_from_event(event, 7, circle_size=5)

    assert entity.identity == "1007"
    assert entity.display_name == "User 1007"
    assert entity.organization_name == "Unnamed Startup"
    assert entity.house is None
    assert entity.progress_percent == 0
    assert entity.group_id == "2"


def test_entity_from_event_prefers_event_name_over_default() -> None:
    entity = entity_from_event(make_event(event_name="Pitch Night"), 0)

    assert entity.organization_name == "Pitch Night"


def test_entity_from_event_reads_privacy_flags_and_circle() -> None:
    event = make_event(stealth="true", contact_me=False, circle="circle_4")

    entity = entity_from_event(event, 0)

    assert entity.stealth is True
    assert entity.contact_consent is False
    assert entity.group_id == "4"


def test_entity_from_snapshot_maps_fields() -> None:
    row = make_row(
        npid="12",
        startup_name="Quiet Labs",
        founder_name="Lin",
        founder_email="lin@example.com",
        founder_telegram="@lin",
        website="https://quiet.example",
        house="side project",
        current_progress="0.35",
        stealth="1",
        contact_me="",
        circle="circle_2",
        circle_name="Night Owls",
        founder_city="Lisbon",
        wave="",
    )

    entity = entity_from_snapshot(row, 0)

    assert entity.identity == "12"
    assert entity.display_name == "Lin"
    assert entity.organization_name == "Quiet Labs"
    assert entity.house is House.SIDE
    assert entity.progress_percent == 35
    assert entity.stealth is True
    assert entity.contact_consent is True
    assert entity.group_id == "2"
    assert entity.group_name == "Night Owls"
    assert entity.contact.telegram == "@lin"
    assert entity.login_code == derive_login_code("12")
    assert entity.extra == {"founder_city": "Lisbon"}
    assert entity.source is SourceKind.SNAPSHOT


def test_entity_from_snapshot_reads_percent_column_and_login_code() -> None:
    row = make_row(id="abc", name="Solo", progress="80", login_code="issued-code")

    entity = entity_from_snapshot(row, 0)

    assert entity.progress_percent == 80
    assert entity.display_name == "Solo"
    assert entity.organization_name == "Solo"
    assert entity.login_code == "issued-code"
    assert entity.group_id is None


def test_check_ins_follow_progress() -> None:
    entity = entity_from_snapshot(make_row(npid="1", current_progress="0.3"), 0)

    assert len(entity.check_ins) == CHECK_IN_COUNT
    assert entity.check_ins[:3] == (True, True, True)
    assert not any(entity.check_ins[3:])


def test_select_base_source() -> None:
    live = [make_event()]
    snapshot = [make_row(npid="1")]

    assert select_base_source(live, snapshot)[0] is SourceKind.LIVE
    assert select_base_source([], snapshot)[0] is SourceKind.SNAPSHOT
    assert select_base_source(None, snapshot)[0] is SourceKind.SNAPSHOT
    assert select_base_source([], None)[0] is SourceKind.LIVE
    with pytest.raises(ReconciliationUnavailableError):
        select_base_source(None, None)


def test_reconcile_prefers_live_records(override_store: OverrideStore) -> None:
    live = [make_event(telegram_id=1, startup_name="Live Co")]
    snapshot = [make_row(npid="1", startup_name="Snapshot Co")]

    entities = reconcile(live, snapshot, override_store)

    assert [entity.organization_name for entity in entities] == ["Live Co"]


def test_reconcile_falls_back_to_snapshot_when_live_is_empty(
    override_store: OverrideStore,
) -> None:
    entities = reconcile([], [make_row(npid="1", startup_name="Snapshot Co")], override_store)

    assert [entity.source for entity in entities] == [SourceKind.SNAPSHOT]


def test_reconcile_without_any_source_raises(override_store: OverrideStore) -> None:
    with pytest.raises(ReconciliationUnavailableError):
        reconcile(None, None, override_store)


def test_reconcile_identity_collision_last_wins(
    override_store: OverrideStore, caplog: pytest.LogCaptureFixture
) -> None:
    snapshot = [
        make_row(npid="5", startup_name="First"),
        make_row(npid="6", startup_name="Other"),
        make_row(npid="5", startup_name="Second"),
    ]

    with caplog.at_level(logging.WARNING):
        entities = reconcile(None, snapshot, override_store)

    assert [(entity.identity, entity.organization_name) for entity in entities] == [
        ("5", "Second"),
        ("6", "Other"),
    ]
    assert "Identity collision" in caplog.text


def test_reconcile_skips_malformed_records(
    override_store: OverrideStore, caplog: pytest.LogCaptureFixture
) -> None:
    live = [make_event(telegram_id=1), "garbage", make_event(telegram_id=2)]

    with caplog.at_level(logging.WARNING):
        entities = reconcile(live, None, override_store)

    assert [entity.identity for entity in entities] == ["1", "2"]
    assert "Skipping malformed" in caplog.text


def test_reconcile_accepts_plain_mapping_rows(override_store: OverrideStore) -> None:
    entities = reconcile(None, [{"npid": "3", "startup_name": "Dict Co"}], override_store)

    assert entities[0].identity == "3"
    assert entities[0].organization_name == "Dict Co"


def test_override_fields_win_over_source(override_store: OverrideStore) -> None:
    override_store.put("1", {"house": "karma", "progress_percent": 90, "bio": "edited"})
    live = [make_event(telegram_id=1, group="venture", percent=10, bio="original")]

    (entity,) = reconcile(live, None, override_store)

    assert entity.house is House.KARMA
    assert entity.progress_percent == 90
    assert entity.bio == "edited"
    assert entity.source is SourceKind.LIVE


def test_override_none_values_do_not_mask_source(override_store: OverrideStore) -> None:
    override_store.put("1", {"bio": None, "website_url": None})
    live = [make_event(telegram_id=1, bio="fresh", website="https://fresh.example")]

    (entity,) = reconcile(live, None, override_store)

    assert entity.bio == "fresh"
    assert entity.website_url == "https://fresh.example"


def test_privacy_flags_always_come_from_override(override_store: OverrideStore) -> None:
    override_store.put("1", {"stealth": True, "contact_me": "false"})
    live = [make_event(telegram_id=1, stealth=False, contact_me=True)]

    (entity,) = reconcile(live, None, override_store)

    assert entity.stealth is True
    assert entity.contact_consent is False


@pytest.mark.parametrize("blank", [None, "", "  "])
def test_blank_privacy_flags_in_override_keep_source_defaults(
    override_store: OverrideStore,
    blank: object,
) -> None:
    row = make_row(npid="7", startup_name="Quiet Labs", stealth="", contact_me="")
    override_store.put("7", {**row.fields, "stealth": blank, "contact_me": blank})

    (entity,) = reconcile(None, [row], override_store)

    assert entity.contact_consent is True
    assert entity.stealth is False


def test_stealth_survives_live_refresh(override_store: OverrideStore) -> None:
    override_store.put("1", {"stealth": True})

    for percent in (10, 20, 30):
        live = [make_event(telegram_id=1, percent=percent, stealth=False)]
        (entity,) = reconcile(live, None, override_store)
        assert entity.stealth is True
        assert entity.progress_percent == percent


def test_override_only_identity_is_appended(override_store: OverrideStore) -> None:
    override_store.put("99", {"startup_name": "Ghost Co", "house": "side"})
    live = [make_event(telegram_id=1)]

    entities = reconcile(live, None, override_store)

    assert [entity.identity for entity in entities] == ["1", "99"]
    ghost = entities[1]
    assert ghost.organization_name == "Ghost Co"
    assert ghost.house is House.SIDE
    assert ghost.source is SourceKind.OVERRIDE
    assert ghost.login_code == derive_login_code("99")


def test_reconcile_without_overrides(override_store: OverrideStore) -> None:
    override_store.put("1", {"house": "karma"})
    live = [make_event(telegram_id=1, group="venture")]

    (entity,) = reconcile(live, None, None)

    assert entity.house is House.VENTURE


def test_apply_override_routes_unknown_and_contact_fields(override_store: OverrideStore) -> None:
    base = entity_from_event(make_event(telegram_id=1), 0)
    record = override_store.put(
        "1",
        {"founder_email": "new@example.com", "pitch_deck": "https://deck.example", "id": "1"},
    )

    entity = apply_override(base, record)

    assert entity.contact.email == "new@example.com"
    assert entity.contact.telegram == "ada"
    assert entity.extra["pitch_deck"] == "https://deck.example"
    assert "id" not in entity.extra


def test_apply_override_normalizes_values(override_store: OverrideStore) -> None:
    base = entity_from_event(make_event(telegram_id=1), 0)
    record = override_store.put(
        "1", {"house": "astronaut", "progress_percent": "250", "display_name": "  "}
    )

    entity = apply_override(base, record)

    assert entity.house is None
    assert entity.progress_percent == 100
    assert entity.display_name == "Ada Founder"
