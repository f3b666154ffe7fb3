"""HTTP client for the live event feed."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from rosterdash.adapters.http_resilience import ResilientClient
from rosterdash.config.feed import FeedConfig, get_feed_config
from rosterdash.domain.errors import SourceUnavailableError
from rosterdash.domain.ports.fetching import FeedProfile, FeedSession, LiveFeedFetcher

from .schema import EventPayload, ProfilePayload
from .translator import parse_event, parse_profile

if TYPE_CHECKING:
    from collections.abc import Callable

    from rosterdash.config.http_resilience import ResilienceConfig
    from rosterdash.domain.model.records import EventRecord

log = getLogger(__name__)

EVENT_LIST_PATH = "/api/v1/agent/agent_user/event-list"
PROFILE_PATH = "/api/v1/agent/agent_user/profile"
API_KEY_HEADER = "X-API-KEY"
SOURCE_NAME = "live feed"


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class LiveFeedClient:
    config: FeedConfig = field(default_factory=get_feed_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def __call__(self) -> FeedSession:
        return asyncio.run(self.fetch_session())

    async def fetch_session(self) -> FeedSession:
        """Fetch the event list and the profile concurrently.

        Raises ``SourceUnavailableError`` when the event list cannot be read. A
        failed profile request only drops the profile.
        """

        async with self.client_factory(self.config.resilience) as client:
            events_result, profile_result = await asyncio.gather(
                self._fetch_events(client),
                self._fetch_profile(client),
                return_exceptions=True,
            )

        if isinstance(events_result, BaseException):
            raise events_result
        profile = None if isinstance(profile_result, BaseException) else profile_result
        if isinstance(profile_result, BaseException):
            log.warning("Profile request failed: %s", profile_result)
        log.info(
            "Fetched %s events from live feed (profile=%s)",
            len(events_result),
            "yes" if profile else "no",
        )
        return FeedSession(events=events_result, profile=profile)

    async def _fetch_events(self, client: ResilientClient) -> list[EventRecord]:
        payload = await self._get_json(client, EVENT_LIST_PATH)
        if not isinstance(payload, list):
            raise SourceUnavailableError(SOURCE_NAME, "event list is not a JSON array")

        events: list[EventRecord] = []
        for index, item in enumerate(payload):
            try:
                event = EventPayload.model_validate(item)
            except ValidationError as exc:
                log.warning(
                    "Skipping invalid event at index %s: %s error(s)", index, exc.error_count()
                )
                continue
            events.append(parse_event(event))
        return events

    async def _fetch_profile(self, client: ResilientClient) -> FeedProfile:
        payload = await self._get_json(client, PROFILE_PATH)
        try:
            return parse_profile(ProfilePayload.model_validate(payload))
        except ValidationError as exc:
            raise SourceUnavailableError(SOURCE_NAME, "unexpected profile payload") from exc

    async def _get_json(self, client: ResilientClient, path: str) -> object:
        try:
            response = await client.get(path, headers={API_KEY_HEADER: self.config.api_key})
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            log.error("Live feed returned %s for %s", exc.response.status_code, path)
            raise SourceUnavailableError(
                SOURCE_NAME, f"{path} answered {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise SourceUnavailableError(SOURCE_NAME, f"{path} failed: {exc}") from exc
        except ValueError as exc:
            raise SourceUnavailableError(SOURCE_NAME, f"{path} returned invalid JSON") from exc


if TYPE_CHECKING:
    _fetcher_check: LiveFeedFetcher = LiveFeedClient()
