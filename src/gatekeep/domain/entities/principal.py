"""Principal entities.

A principal is anything that can authenticate. Gatekeep knows two disjoint
populations: external organization users and internal staff users. Engine
code refers to either through a ``PrincipalRef`` instead of branching on
which table a row came from.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class PrincipalKind(str, Enum):
    """The two principal populations."""

    EXTERNAL = "external"
    INTERNAL = "internal"

    @property
    def subject_prefix(self) -> str:
        """Prefix used in the access token ``sub`` claim."""
        return "user:" if self is PrincipalKind.EXTERNAL else "internal:"


@dataclass(frozen=True)
class PrincipalRef:
    """Tagged reference to one principal.

    Attributes:
        kind: Which population the principal belongs to.
        id: The principal's ID within that population.
    """

    kind: PrincipalKind
    id: str

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Principal ID is required")

    @property
    def subject(self) -> str:
        """Kind-prefixed subject, e.g. ``user:<id>`` or ``internal:<id>``."""
        return f"{self.kind.subject_prefix}{self.id}"

    @property
    def external_id(self) -> str | None:
        return self.id if self.kind is PrincipalKind.EXTERNAL else None

    @property
    def internal_id(self) -> str | None:
        return self.id if self.kind is PrincipalKind.INTERNAL else None

    @classmethod
    def from_subject(cls, subject: str) -> "PrincipalRef":
        """Parse a kind-prefixed subject.

        Raises:
            ValueError: If the subject has no known prefix or no ID.
        """
        for kind in PrincipalKind:
            prefix = kind.subject_prefix
            if subject.startswith(prefix):
                return cls(kind=kind, id=subject[len(prefix):])
        raise ValueError(f"Unknown subject format: {subject!r}")

    @classmethod
    def from_columns(
        cls, external_id: str | None, internal_id: str | None
    ) -> "PrincipalRef":
        """Build a reference from a row's pair of mutually exclusive columns."""
        if (external_id is None) == (internal_id is None):
            raise ValueError("Exactly one of external_id and internal_id must be set")
        if external_id is not None:
            return cls(kind=PrincipalKind.EXTERNAL, id=external_id)
        return cls(kind=PrincipalKind.INTERNAL, id=internal_id)


@dataclass(frozen=True)
class PrincipalSummary:
    """Sanitized view of a principal, safe to return to clients.

    Never carries the password hash.
    """

    id: str
    email: str
    kind: PrincipalKind
    name: str | None = None
    is_active: bool = True
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, model, kind: PrincipalKind) -> "PrincipalSummary":
        """Build a summary from an ORM row of either principal table."""
        return cls(
            id=model.id,
            email=model.email,
            kind=kind,
            name=model.name,
            is_active=model.is_active,
            created_at=model.created_at,
        )
