"""Translate live feed payloads into raw domain records."""

from __future__ import annotations

from logging import getLogger

from rosterdash.domain.model.records import EventContact, EventRecord
from rosterdash.domain.ports.fetching import FeedProfile

from .schema import EventPayload, EventPayloadInput, ProfilePayload

log = getLogger(__name__)


def _ensure_event_payload(event: EventPayloadInput) -> EventPayload:
    if isinstance(event, EventPayload):
        return event
    return EventPayload.model_validate(event)


def parse_event(event: EventPayloadInput) -> EventRecord:
    payload = _ensure_event_payload(event)
    contact = payload.contact
    data = payload.data
    return EventRecord(
        contact=EventContact(
            name=contact.name,
            email=contact.email,
            telegram_username=contact.telegram_username,
            telegram_id=contact.telegram_id,
        ),
        event_name=data.event_name,
        percent=data.percent,
        group=data.group,
        finished=data.finished,
        details=dict(data.details),
    )


def parse_profile(profile: ProfilePayload) -> FeedProfile:
    return FeedProfile(name=profile.name, telegram_id=profile.telegram_id)
