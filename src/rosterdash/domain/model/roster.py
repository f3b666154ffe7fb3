"""Canonical roster entities."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Final

from rosterdash.domain.model.enums import House, SourceKind

type IdentityKey = str

CHECK_IN_COUNT: Final[int] = 10
DEFAULT_ORGANIZATION_NAME: Final[str] = "Unnamed Startup"


@dataclass(slots=True, frozen=True)
class ContactChannel:
    """Ways to reach a founder. Every channel is optional."""

    email: str | None = None
    telegram: str | None = None
    linkedin_url: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.email or self.telegram or self.linkedin_url)


@dataclass(slots=True, kw_only=True)
class CanonicalEntity:
    """Normalized, merged, display-ready view of one founder and their startup.

    Rebuilt on every reconciliation pass; never persisted as such. Local edits
    live in the override store instead.
    """

    identity: IdentityKey
    display_name: str
    organization_name: str = DEFAULT_ORGANIZATION_NAME
    house: House | None = None
    progress_percent: int = 0
    stealth: bool = False
    contact_consent: bool = True
    website_url: str | None = None
    contact: ContactChannel = field(default_factory=ContactChannel)
    group_id: str | None = None
    group_name: str | None = None
    group_description: str | None = None
    bio: str | None = None
    motivation: str | None = None
    traction: str | None = None
    login_code: str = ""
    source: SourceKind = SourceKind.SNAPSHOT
    extra: dict[str, str] = field(default_factory=dict[str, str])

    def __post_init__(self) -> None:
        if not self.identity:
            raise ValueError("Canonical entity requires a non-empty identity")
        if self.house is not None and not isinstance(self.house, House):
            raise TypeError(f"house must be a House or None, got {self.house!r}")
        if not 0 <= self.progress_percent <= 100:  # noqa: PLR2004
            raise ValueError(f"progress_percent out of range: {self.progress_percent}")
        if not isinstance(self.stealth, bool) or not isinstance(self.contact_consent, bool):
            raise TypeError("privacy flags must be real booleans")

    @property
    def check_ins(self) -> tuple[bool, ...]:
        """Weekly check-in milestones, one per 10% of progress."""
        return tuple(
            self.progress_percent >= step * 10 for step in range(1, CHECK_IN_COUNT + 1)
        )


# Fields a local override may set directly. Contact channels are flattened so an
# override can change one channel without restating the others.
ENTITY_FIELDS: Final[frozenset[str]] = frozenset(
    f.name for f in fields(CanonicalEntity) if f.name not in {"identity", "contact", "source"}
)
CONTACT_FIELDS: Final[frozenset[str]] = frozenset(f.name for f in fields(ContactChannel))
PRIVACY_FIELDS: Final[frozenset[str]] = frozenset({"stealth", "contact_consent"})
