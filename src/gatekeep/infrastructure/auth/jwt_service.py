"""JWT access token service.

Encodes and decodes RS256-signed access tokens. Access tokens are stateless:
they are validated by signature, issuer and expiry only and are never
revoked server-side, which is why their lifetime is kept short.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from gatekeep.core.logging import get_logger
from gatekeep.domain.entities.principal import PrincipalRef
from gatekeep.domain.entities.token import AccessTokenClaims
from gatekeep.domain.errors import TokenInvalidError
from gatekeep.infrastructure.auth.key_material import KeyMaterial

logger = get_logger(__name__)


class JWTService:
    """Service for creating and validating signed access tokens."""

    ALGORITHM = "RS256"

    def __init__(
        self,
        key_material: KeyMaterial,
        access_token_lifetime: timedelta = timedelta(minutes=15),
        issuer: str = "gatekeep",
    ) -> None:
        """Initialize the JWT service.

        Args:
            key_material: Keypair used to sign and verify.
            access_token_lifetime: Lifetime of issued tokens.
            issuer: Value of the ``iss`` claim.
        """
        self._key_material = key_material
        self.access_token_lifetime = access_token_lifetime
        self.issuer = issuer

    @classmethod
    def from_settings(cls, settings, key_material: KeyMaterial) -> "JWTService":
        return cls(
            key_material=key_material,
            access_token_lifetime=settings.access_token_lifetime,
            issuer=settings.jwt_issuer,
        )

    @property
    def expires_in(self) -> int:
        """Access token lifetime in seconds."""
        return int(self.access_token_lifetime.total_seconds())

    def encode(self, claims: AccessTokenClaims) -> str:
        """Sign an access token.

        Args:
            claims: Principal, email and optional action tag.

        Returns:
            Encoded JWT.
        """
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "iss": self.issuer,
            "sub": claims.subject,
            "kind": claims.kind.value,
            "iat": now,
            "exp": now + self.access_token_lifetime,
        }
        if claims.email is not None:
            payload["email"] = claims.email
        if claims.action is not None:
            payload["act"] = claims.action

        return jwt.encode(payload, self._key_material.private_key, algorithm=self.ALGORITHM)

    def decode(self, token: str) -> AccessTokenClaims:
        """Decode and validate an access token.

        Args:
            token: The encoded JWT.

        Returns:
            The validated claims.

        Raises:
            TokenInvalidError: If the token is malformed, badly signed,
                from another issuer, or expired.
        """
        try:
            payload = jwt.decode(
                token,
                self._key_material.public_key,
                algorithms=[self.ALGORITHM],
                issuer=self.issuer,
                options={"require": ["exp", "iat", "sub", "iss"]},
            )
        except jwt.ExpiredSignatureError as e:
            logger.info("Access token rejected: expired")
            raise TokenInvalidError() from e
        except jwt.InvalidTokenError as e:
            logger.info("Access token rejected", reason=type(e).__name__)
            raise TokenInvalidError() from e

        try:
            principal = PrincipalRef.from_subject(payload["sub"])
        except ValueError as e:
            logger.info("Access token rejected: unknown subject format")
            raise TokenInvalidError() from e

        if payload.get("kind") != principal.kind.value:
            logger.info("Access token rejected: kind does not match subject")
            raise TokenInvalidError()

        return AccessTokenClaims(
            principal=principal,
            email=payload.get("email"),
            action=payload.get("act"),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
