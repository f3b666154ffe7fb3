"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_int, optional_env_var, require_env_var, require_env_vars
from .errors import (
    ConfigurationError,
    InvalidConfigurationValueError,
    MissingConfigurationError,
)
from .feed import FeedConfig, get_feed_config
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .roster import RosterConfig, RosterMode, get_roster_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "FeedConfig",
    "InvalidConfigurationValueError",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "RosterConfig",
    "RosterMode",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_feed_config",
    "get_roster_config",
    "get_storage_config",
    "optional_env_int",
    "optional_env_var",
    "require_env_var",
    "require_env_vars",
]
