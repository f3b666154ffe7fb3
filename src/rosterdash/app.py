"""Application orchestration entry points."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from rosterdash.adapters.feed import LiveFeedClient
from rosterdash.adapters.snapshot import CsvSnapshotSource
from rosterdash.adapters.sqlalchemy import SqlAlchemyKeyValueStore, configured_engine, startup
from rosterdash.config.roster import RosterMode, get_roster_config
from rosterdash.domain import roster as roster_ops
from rosterdash.domain.errors import ReconciliationUnavailableError, SourceUnavailableError
from rosterdash.domain.reconciliation.identity import parse_numeric_id, resolve_identity
from rosterdash.domain.reconciliation.merge import reconcile, select_base_source
from rosterdash.domain.reconciliation.normalize import normalize_text
from rosterdash.domain.reconciliation.overrides import OverrideStore

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from rosterdash.config.roster import RosterConfig
    from rosterdash.domain.model.enums import House, SourceKind
    from rosterdash.domain.model.records import EventRecord, SnapshotRow
    from rosterdash.domain.model.roster import CanonicalEntity, IdentityKey
    from rosterdash.domain.ports.fetching import FeedProfile, LiveFeedFetcher, SnapshotSource
    from rosterdash.domain.ports.persistence import KeyValueStore
    from rosterdash.domain.roster import AuthResult, Circle, SortKey

log = getLogger(__name__)


@dataclass(slots=True)
class RosterContext:
    """Everything a reconciliation pass needs, created once per session."""

    config: RosterConfig
    overrides: OverrideStore
    snapshot: SnapshotSource
    live_feed: LiveFeedFetcher | None = None


@dataclass(slots=True)
class Roster:
    entities: list[CanonicalEntity]
    source: SourceKind
    current_identity: IdentityKey | None = None

    def find(self, identity: IdentityKey) -> CanonicalEntity | None:
        return next((entity for entity in self.entities if entity.identity == identity), None)


@dataclass(slots=True)
class _SourceData:
    live: list[EventRecord] | None = None
    snapshot: list[SnapshotRow] | None = None
    profile: FeedProfile | None = None


def build_context(
    config: RosterConfig | None = None,
    *,
    store: KeyValueStore | None = None,
    snapshot: SnapshotSource | None = None,
    live_feed: LiveFeedFetcher | None = None,
) -> RosterContext:
    """Wire the configured adapters into a context.

    Explicit arguments win over configuration, which is how tests inject fakes.
    """

    resolved = config or get_roster_config()
    if store is None:
        engine = configured_engine() or startup(database_uri=resolved.database.uri)
        store = SqlAlchemyKeyValueStore(engine)
    if live_feed is None and resolved.mode is RosterMode.LIVE and resolved.feed is not None:
        live_feed = LiveFeedClient(config=resolved.feed)

    log.info(
        "Roster context ready: mode=%s, snapshot=%s, live_feed=%s",
        resolved.mode,
        resolved.snapshot_path,
        live_feed is not None,
    )
    return RosterContext(
        config=resolved,
        overrides=OverrideStore(store),
        snapshot=snapshot or CsvSnapshotSource(resolved.snapshot_path),
        live_feed=live_feed,
    )


def _fetch_sources(context: RosterContext) -> _SourceData:
    data = _SourceData()
    if context.live_feed is not None:
        try:
            session = context.live_feed()
        except SourceUnavailableError as exc:
            log.warning("Live feed unavailable, falling back to snapshot: %s", exc)
        else:
            data.live = list(session.events)
            data.profile = session.profile

    if not data.live:
        try:
            data.snapshot = list(context.snapshot.load())
        except SourceUnavailableError as exc:
            log.warning("Snapshot unavailable: %s", exc)
    return data


def _same_telegram_id(left: object, right: object) -> bool:
    left_numeric = parse_numeric_id(left)
    right_numeric = parse_numeric_id(right)
    if left_numeric is not None and right_numeric is not None:
        return left_numeric == right_numeric
    left_text = normalize_text(left)
    return left_text is not None and left_text == normalize_text(right)


def _current_identity(
    profile: FeedProfile | None,
    live_records: Sequence[EventRecord] | None,
    entities: Sequence[CanonicalEntity],
) -> IdentityKey | None:
    """Find the entity built from the live event that carries the profile's telegram id.

    Events whose telegram id is not numeric still match; they carry a positional
    identity, so the event's position decides which entity it is.
    """

    if profile is None or not live_records:
        return None
    for index, record in enumerate(live_records):
        if _same_telegram_id(record.contact.telegram_id, profile.telegram_id):
            identity = resolve_identity(record, index)
            if any(entity.identity == identity for entity in entities):
                return identity
    return None


def load_roster(context: RosterContext) -> Roster:
    """Fetch the sources and run one reconciliation pass.

    Raises ``ReconciliationUnavailableError`` when neither the live feed nor the
    snapshot can be read.
    """

    data = _fetch_sources(context)
    source, _ = select_base_source(data.live, data.snapshot)
    entities = reconcile(
        data.live,
        data.snapshot,
        context.overrides,
        circle_size=context.config.circle_size,
    )
    return Roster(
        entities=entities,
        source=source,
        current_identity=_current_identity(data.profile, data.live, entities),
    )


def authenticate(context: RosterContext, code: object) -> AuthResult:
    roster = load_roster(context)
    result = roster_ops.authenticate(code, roster.entities)
    log.info("Login attempt: %s", result.reason)
    return result


def list_entities(
    context: RosterContext,
    *,
    house: str | House | None = None,
    sort: str | SortKey | None = None,
) -> list[CanonicalEntity]:
    return roster_ops.list_entities(load_roster(context).entities, house=house, sort=sort)


def group_by_circle(context: RosterContext) -> list[Circle]:
    return roster_ops.group_by_circle(load_roster(context).entities)


def apply_override(
    context: RosterContext,
    identity: IdentityKey,
    partial_fields: Mapping[str, object],
) -> CanonicalEntity:
    """Record a local edit for ``identity`` and return the resulting entity."""

    data = _fetch_sources(context)
    try:
        provisional = reconcile(
            data.live,
            data.snapshot,
            None,
            circle_size=context.config.circle_size,
        )
    except ReconciliationUnavailableError:
        log.warning("No source available; building %s from its override alone", identity)
        provisional = []
    base = next((entity for entity in provisional if entity.identity == identity), None)
    return roster_ops.apply_override(context.overrides, identity, partial_fields, base=base)


def clear_overrides(context: RosterContext, identity: IdentityKey | None = None) -> None:
    context.overrides.clear(identity)
    log.info("Cleared overrides for %s", identity or "all identities")
