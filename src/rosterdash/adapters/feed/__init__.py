"""Public interface for the live feed adapter."""

from __future__ import annotations

from .client import EVENT_LIST_PATH, PROFILE_PATH, LiveFeedClient
from .schema import ContactPayload, EventDataPayload, EventPayload, ProfilePayload
from .translator import parse_event, parse_profile

__all__ = [
    "EVENT_LIST_PATH",
    "PROFILE_PATH",
    "ContactPayload",
    "EventDataPayload",
    "EventPayload",
    "LiveFeedClient",
    "ProfilePayload",
    "parse_event",
    "parse_profile",
]
