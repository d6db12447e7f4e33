"""Access token claims and token pair entities."""

from dataclasses import dataclass
from datetime import datetime

from gatekeep.domain.entities.principal import PrincipalKind, PrincipalRef


@dataclass(frozen=True)
class AccessTokenClaims:
    """Claims carried by a signed access token.

    Attributes:
        principal: The principal the token was issued to.
        email: The principal's email at issue time.
        action: Optional purpose tag. Plain access tokens carry none.
        issued_at: Set when decoding; ignored when issuing.
        expires_at: Set when decoding; ignored when issuing.
    """

    principal: PrincipalRef
    email: str | None = None
    action: str | None = None
    issued_at: datetime | None = None
    expires_at: datetime | None = None

    @property
    def subject(self) -> str:
        return self.principal.subject

    @property
    def kind(self) -> PrincipalKind:
        return self.principal.kind


@dataclass(frozen=True)
class TokenPair:
    """A freshly minted access token and refresh token.

    Attributes:
        access_token: Signed JWT.
        refresh_token: Raw opaque refresh token (only its hash is stored).
        expires_in: Access token lifetime in seconds.
        principal: Owner of both tokens.
        session_id: Session the refresh token is bound to.
    """

    access_token: str
    refresh_token: str
    expires_in: int
    principal: PrincipalRef
    session_id: str
