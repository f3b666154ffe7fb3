"""Live feed configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig

DEFAULT_FEED_BASE_URL = "https://dev.socap.ai"
FEED_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True, slots=True)
class FeedConfig:
    """Holds live feed API configuration values."""

    api_key: str
    resilience: ResilienceConfig


def get_feed_config(*, resilience: ResilienceConfig | None = None) -> FeedConfig:
    values = require_env_vars(("FEED_API_KEY",))
    base_url = optional_env_var("FEED_BASE_URL") or DEFAULT_FEED_BASE_URL
    return FeedConfig(
        api_key=values["FEED_API_KEY"],
        resilience=resilience
        or ResilienceConfig(
            name="feed",
            base_url=base_url,
            timeout_seconds=FEED_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=4, per_seconds=1.0),
            cache=CacheConfig(default_ttl_seconds=60.0),
            default_headers={"Accept": "application/json"},
        ),
    )
