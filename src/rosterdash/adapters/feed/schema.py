"""Pydantic models describing the live feed API payloads."""

from __future__ import annotations

from collections.abc import Mapping
from typing import cast

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class FeedBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ContactPayload(FeedBaseModel):
    name: str | None = None
    email: str | None = None
    telegram_username: str | None = None
    telegram_id: int | str | None = None

    _normalize_text = field_validator("name", "email", "telegram_username", mode="before")(
        _blank_to_none
    )


class EventDataPayload(FeedBaseModel):
    event_name: str | None = None
    percent: float | str | None = None
    finished: bool = False
    modified: str | None = None
    group: str | None = None
    details: dict[str, object] = Field(default_factory=dict[str, object])

    @model_validator(mode="before")
    @classmethod
    def _fallback_to_pre_details(cls, value: object) -> object:
        if isinstance(value, Mapping):
            mapping_value = cast(Mapping[str, object], value)
            if not isinstance(mapping_value.get("details"), Mapping):
                data: dict[str, object] = dict(mapping_value)
                pre_details = data.get("pre_details")
                data["details"] = pre_details if isinstance(pre_details, Mapping) else {}
                return data
        return value

    @field_validator("finished", mode="before")
    @classmethod
    def _parse_finished(cls, value: object) -> object:
        return False if value is None else value

    _normalize_text = field_validator("event_name", "group", "modified", mode="before")(
        _blank_to_none
    )


class EventPayload(FeedBaseModel):
    contact: ContactPayload
    data: EventDataPayload = Field(default_factory=EventDataPayload)


class ProfilePayload(FeedBaseModel):
    name: str | None = None
    telegram_id: int | str | None = None


EventPayloadInput = EventPayload | Mapping[str, object]
