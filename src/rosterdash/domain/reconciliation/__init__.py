"""Reconciliation core: turn live feed events, snapshot rows and local overrides
into one canonical roster.

Layered flow:
1) normalize raw field values (``normalize``)
2) resolve a stable identity per record (``identity``)
3) build provisional entities from the chosen base source (``merge``)
4) lay local overrides on top (``merge`` + ``overrides``)
5) verify login codes against the result (``credentials``)
"""

from __future__ import annotations

from .credentials import (
    LEGACY_CODES,
    MIN_CODE_LENGTH,
    LegacyCodeRule,
    derive_login_code,
    find_entity_for_code,
    verify_login_code,
)
from .identity import parse_numeric_id, resolve_identity
from .merge import (
    apply_override,
    build_entity,
    entity_from_event,
    entity_from_override,
    entity_from_snapshot,
    reconcile,
    select_base_source,
)
from .normalize import (
    HOUSE_RULES,
    house_display_name,
    normalize_boolean,
    normalize_flag,
    normalize_group_id,
    normalize_house,
    normalize_progress,
    normalize_text,
)
from .overrides import DEFAULT_STORAGE_KEY, OverrideStore

__all__ = [
    "DEFAULT_STORAGE_KEY",
    "HOUSE_RULES",
    "LEGACY_CODES",
    "MIN_CODE_LENGTH",
    "LegacyCodeRule",
    "OverrideStore",
    "apply_override",
    "build_entity",
    "derive_login_code",
    "entity_from_event",
    "entity_from_override",
    "entity_from_snapshot",
    "find_entity_for_code",
    "house_display_name",
    "normalize_boolean",
    "normalize_flag",
    "normalize_group_id",
    "normalize_house",
    "normalize_progress",
    "normalize_text",
    "parse_numeric_id",
    "reconcile",
    "resolve_identity",
    "select_base_source",
    "verify_login_code",
]
