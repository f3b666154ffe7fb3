"""Roster-level configuration: source mode and snapshot location."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from .env import optional_env_int, optional_env_var
from .errors import ConfigurationError, InvalidConfigurationValueError
from .feed import FeedConfig, get_feed_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

DEFAULT_CIRCLE_SIZE = 5


class RosterMode(StrEnum):
    LIVE = "live"
    DEMO = "demo"


@dataclass(frozen=True, slots=True)
class RosterConfig:
    mode: RosterMode
    snapshot_path: Path
    storage: StorageConfig
    database: DatabaseConfig
    feed: FeedConfig | None = None
    circle_size: int = DEFAULT_CIRCLE_SIZE


def _parse_mode(value: str | None) -> RosterMode:
    if value is None:
        return RosterMode.DEMO
    try:
        return RosterMode(value.lower())
    except ValueError as exc:
        allowed = ", ".join(mode.value for mode in RosterMode)
        raise InvalidConfigurationValueError("ROSTER_MODE", value, f"one of {allowed}") from exc


def get_roster_config(*, mode: RosterMode | None = None) -> RosterConfig:
    """Build the roster configuration from the environment.

    The live feed credentials are only required in live mode; demo mode runs
    entirely off the snapshot and local overrides.
    """

    resolved_mode = mode or _parse_mode(optional_env_var("ROSTER_MODE"))
    storage = get_storage_config()
    snapshot_env = optional_env_var("ROSTER_SNAPSHOT_PATH")
    snapshot_path = Path(snapshot_env) if snapshot_env else storage.snapshot_path()

    circle_size = optional_env_int("ROSTER_CIRCLE_SIZE", DEFAULT_CIRCLE_SIZE)
    if circle_size <= 0:
        raise ConfigurationError("ROSTER_CIRCLE_SIZE must be positive")

    return RosterConfig(
        mode=resolved_mode,
        snapshot_path=snapshot_path,
        storage=storage,
        database=get_database_config(storage=storage),
        feed=get_feed_config() if resolved_mode is RosterMode.LIVE else None,
        circle_size=circle_size,
    )
