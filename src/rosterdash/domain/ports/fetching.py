"""Ports for fetching raw roster records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from rosterdash.domain.model.records import EventRecord

if TYPE_CHECKING:
    from collections.abc import Sequence

    from rosterdash.domain.model.records import SnapshotRow


@dataclass(slots=True, frozen=True)
class FeedProfile:
    """The signed-in user as reported by the live feed."""

    name: str | None = None
    telegram_id: object = None


@dataclass(slots=True)
class FeedSession:
    """Result of one live feed refresh.

    ``profile`` is ``None`` when the profile request failed; the events are still
    usable in that case.
    """

    events: Sequence[EventRecord] = field(default_factory=list[EventRecord])
    profile: FeedProfile | None = None


@runtime_checkable
class LiveFeedFetcher(Protocol):
    """Callable port for retrieving the live event feed.

    Implementations raise ``SourceUnavailableError`` when the event list cannot be
    obtained.
    """

    def __call__(self) -> FeedSession: ...


@runtime_checkable
class SnapshotSource(Protocol):
    """Port for the static tabular snapshot."""

    def load(self) -> Sequence[SnapshotRow]: ...


__all__ = ["FeedProfile", "FeedSession", "LiveFeedFetcher", "SnapshotSource"]
