"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class House(StrEnum):
    """Program track a startup belongs to."""

    VENTURE = "venture"
    KARMA = "karma"
    BUILDER = "builder"
    SIDE = "side"


class SourceKind(StrEnum):
    """Which source supplied the base record of a canonical entity."""

    LIVE = "live"
    SNAPSHOT = "snapshot"
    OVERRIDE = "override"


class ProgressUnit(StrEnum):
    """How a raw progress value should be read.

    ``AUTO`` treats values inside ``[0, 1]`` as fractions and everything else as
    percentages.
    """

    AUTO = "auto"
    FRACTION = "fraction"
    PERCENT = "percent"
