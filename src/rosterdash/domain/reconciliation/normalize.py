"""Field normalizers turning heterogeneous source values into canonical types.

Every normalizer here is a pure, total function: unrecognized input yields a
safe default instead of an exception.

House aliasing is an ordered rule table. Inputs can match several alias sets
(``"social venture"`` contains both a venture and a karma alias), so the first
matching rule wins and the order of ``HOUSE_RULES`` is part of the contract.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable
from typing import Final

from rosterdash.domain.model.enums import House, ProgressUnit

log = logging.getLogger(__name__)

type HousePredicate = Callable[[str], bool]

_BRACKETS = re.compile(r"[\[\]]")
_HOUSE_WORD = re.compile(r"\s*house\s*", re.IGNORECASE)

_TRUE_LITERALS: Final[frozenset[str]] = frozenset({"true", "1"})
_FALSE_LITERALS: Final[frozenset[str]] = frozenset({"false", "0"})

_HOUSE_DISPLAY_NAMES: Final[dict[House, str]] = {
    House.VENTURE: "Venture",
    House.KARMA: "Karma",
    House.BUILDER: "Builder",
    House.SIDE: "Side",
}
UNKNOWN_HOUSE_DISPLAY_NAME: Final[str] = "Unknown"


def _contains_any(*needles: str) -> HousePredicate:
    def predicate(cleaned: str) -> bool:
        return any(needle in cleaned for needle in needles)

    return predicate


def _equals_any(*literals: str) -> HousePredicate:
    def predicate(cleaned: str) -> bool:
        return cleaned in literals

    return predicate


HOUSE_RULES: Final[tuple[tuple[HousePredicate, House], ...]] = (
    (_equals_any("build", "build!", "builds"), House.BUILDER),
    (_contains_any("build", "builder", "lifestyle", "smb"), House.BUILDER),
    (_contains_any("venture", "adventure", "vc"), House.VENTURE),
    (_contains_any("karma", "impact", "social"), House.KARMA),
    (_contains_any("side", "hustle", "project"), House.SIDE),
)


def clean_house_text(raw: object) -> str:
    """Strip brackets and the word "house", lowercase and trim."""

    text = _BRACKETS.sub("", str(raw).lower())
    return _HOUSE_WORD.sub("", text).strip()


def normalize_house(raw: object) -> House | None:
    """Map a free-text house label onto the fixed taxonomy.

    Returns ``None`` for empty or unrecognized input; unknown values are never
    guessed into one of the four houses.
    """

    if isinstance(raw, House):
        return raw
    if raw is None or raw == "" or raw is False:
        return None

    cleaned = clean_house_text(raw)
    for predicate, house in HOUSE_RULES:
        if predicate(cleaned):
            return house

    try:
        return House(cleaned)
    except ValueError:
        log.warning("Unknown house value: %r", raw)
        return None


def house_display_name(house: object) -> str:
    normalized = normalize_house(house)
    if normalized is None:
        return UNKNOWN_HOUSE_DISPLAY_NAME
    return _HOUSE_DISPLAY_NAMES[normalized]


def normalize_boolean(raw: object) -> bool:
    """Coerce a source flag to a real boolean.

    Only ``True``, ``"true"``, ``"1"`` and the number ``1`` (``1.0`` included)
    are truthy. Everything else, including ``None`` and garbage, is ``False``;
    there is no unknown state.
    """

    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int | float):
        return raw == 1
    if isinstance(raw, str):
        stripped = raw.strip().lower()
        if stripped in _TRUE_LITERALS:
            return True
        if stripped in _FALSE_LITERALS:
            return False
    return False


def normalize_flag(raw: object, *, default: bool) -> bool:
    """Like ``normalize_boolean`` but absent values fall back to ``default``."""

    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    return normalize_boolean(raw)


def _to_float(raw: object) -> float | None:
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, int | float):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.strip().rstrip("%"))
        except ValueError:
            return None
    else:
        return None
    return value if math.isfinite(value) else None


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def normalize_progress(raw: object, *, unit: ProgressUnit = ProgressUnit.AUTO) -> int:
    """Return an integer percentage clamped to ``[0, 100]``.

    ``ProgressUnit.AUTO`` reads values inside ``[0, 1]`` as fractions. Sources
    that know their unit should say so, otherwise ``1`` means 100%.
    Absent or unparseable input yields ``0``.
    """

    value = _to_float(raw)
    if value is None:
        return 0

    match unit:
        case ProgressUnit.FRACTION:
            value *= 100
        case ProgressUnit.AUTO if 0 <= value <= 1:
            value *= 100
        case _:
            pass

    return max(0, min(100, _round_half_up(value)))


def normalize_text(raw: object) -> str | None:
    """Return stripped text, or ``None`` for blanks and non-scalar values."""

    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        return raw.strip() or None
    if isinstance(raw, int | float):
        return str(raw)
    return None


def normalize_group_id(raw: object) -> str | None:
    """Group ids arrive as ``"3"`` or ``"circle_3"``; keep the bare form."""

    text = normalize_text(raw)
    if text is None:
        return None
    if text.lower().startswith("circle_"):
        text = text[len("circle_") :]
    return text or None
