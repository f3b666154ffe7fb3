"""Domain port definitions for adapters."""

from __future__ import annotations

from .fetching import FeedProfile, FeedSession, LiveFeedFetcher, SnapshotSource
from .persistence import KeyValueStore

__all__ = [
    "FeedProfile",
    "FeedSession",
    "KeyValueStore",
    "LiveFeedFetcher",
    "SnapshotSource",
]
