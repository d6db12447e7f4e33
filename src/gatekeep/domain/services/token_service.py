"""Token service: access token signing and refresh token rotation.

Access tokens are stateless RS256 JWTs. Refresh tokens are opaque random
values whose SHA-256 hash is stored; each one can be rotated exactly once.
The service never commits. The calling service owns the transaction, so a
rotation and its audit entry land together or not at all.
"""

from datetime import timedelta

from gatekeep.core.logging import get_logger
from gatekeep.domain.entities.principal import PrincipalKind, PrincipalRef
from gatekeep.domain.entities.token import AccessTokenClaims, TokenPair
from gatekeep.domain.errors import (
    PrincipalInactiveError,
    TokenExpiredError,
    TokenInvalidError,
    TokenRevokedError,
)
from gatekeep.infrastructure.auth.jwt_service import JWTService
from gatekeep.infrastructure.auth.opaque_token import generate_token, hash_token
from gatekeep.infrastructure.persistence.models import RefreshTokenModel
from gatekeep.infrastructure.persistence.repositories.external_user_repository import (
    ExternalUserRepository,
)
from gatekeep.infrastructure.persistence.repositories.internal_user_repository import (
    InternalUserRepository,
)
from gatekeep.infrastructure.persistence.repositories.refresh_token_repository import (
    RefreshTokenRepository,
)
from gatekeep.infrastructure.persistence.repositories.session_repository import (
    SessionRepository,
)
from gatekeep.infrastructure.persistence.timestamps import as_utc, utcnow

logger = get_logger(__name__)


class TokenService:
    """Issues, verifies, rotates and revokes tokens."""

    def __init__(
        self,
        jwt_service: JWTService,
        refresh_token_repo: RefreshTokenRepository,
        session_repo: SessionRepository,
        external_user_repo: ExternalUserRepository,
        internal_user_repo: InternalUserRepository,
        refresh_token_lifetime: timedelta = timedelta(days=14),
    ) -> None:
        """Initialize the token service.

        Args:
            jwt_service: Access token codec.
            refresh_token_repo: Refresh token store.
            session_repo: Session store.
            external_user_repo: Used to resolve the owner on rotation.
            internal_user_repo: Used to resolve the owner on rotation.
            refresh_token_lifetime: Lifetime of issued refresh tokens.
        """
        self.jwt_service = jwt_service
        self.refresh_token_repo = refresh_token_repo
        self.session_repo = session_repo
        self.external_user_repo = external_user_repo
        self.internal_user_repo = internal_user_repo
        self.refresh_token_lifetime = refresh_token_lifetime

    @property
    def access_token_expires_in(self) -> int:
        return self.jwt_service.expires_in

    def issue_access_token(self, claims: AccessTokenClaims) -> str:
        """Sign an access token for the given claims."""
        return self.jwt_service.encode(claims)

    def verify_access_token(
        self, token: str, action: str | None = None
    ) -> AccessTokenClaims:
        """Verify an access token and its purpose tag.

        A token carrying an action tag is only accepted when that exact action
        is requested, and a plain token is never accepted for an action.

        Raises:
            TokenInvalidError: On any failure.
        """
        claims = self.jwt_service.decode(token)
        if claims.action != action:
            logger.info(
                "Access token rejected: action mismatch",
                expected=action,
                actual=claims.action,
            )
            raise TokenInvalidError()
        return claims

    async def issue_refresh_token(
        self,
        principal: PrincipalRef,
        session_id: str,
        rotated_from_id: str | None = None,
    ) -> str:
        """Mint a refresh token bound to a session.

        Args:
            principal: Owner of the session.
            session_id: Session the token belongs to.
            rotated_from_id: ID of the token this one replaces, if any.

        Returns:
            The raw token. Only its hash is stored.
        """
        raw_token = generate_token()
        await self.refresh_token_repo.create(
            RefreshTokenModel(
                session_id=session_id,
                external_user_id=principal.external_id,
                internal_user_id=principal.internal_id,
                token_hash=hash_token(raw_token),
                expires_at=utcnow() + self.refresh_token_lifetime,
                rotated_from_id=rotated_from_id,
            )
        )
        return raw_token

    async def rotate_refresh_token(self, presented: str) -> TokenPair:
        """Exchange a refresh token for a new access and refresh token.

        The presented row is locked, then revoked with a conditional write.
        Of two concurrent rotations of the same value exactly one wins; the
        other sees the token as revoked.

        Raises:
            TokenInvalidError: If no such token exists.
            TokenRevokedError: If the token or its session was revoked, or the
                token was already rotated.
            TokenExpiredError: If the token is past its expiry.
            PrincipalInactiveError: If the owner has been deactivated.
        """
        row = await self.refresh_token_repo.get_by_hash(
            hash_token(presented), for_update=True
        )
        if row is None:
            logger.info("Refresh rejected: unknown token")
            raise TokenInvalidError()

        principal = PrincipalRef.from_columns(row.external_user_id, row.internal_user_id)

        if row.revoked_at is not None:
            logger.warning(
                "Refresh token reuse detected",
                token_id=row.id,
                session_id=row.session_id,
                principal=principal.subject,
            )
            raise TokenRevokedError()

        session = await self.session_repo.get_by_id(row.session_id)
        if session is None or session.revoked_at is not None:
            logger.info("Refresh rejected: session revoked", session_id=row.session_id)
            raise TokenRevokedError()

        if as_utc(row.expires_at) <= utcnow():
            logger.info("Refresh rejected: token expired", token_id=row.id)
            raise TokenExpiredError()

        if not await self.refresh_token_repo.revoke_if_active(row.id):
            logger.warning(
                "Refresh token rotated concurrently",
                token_id=row.id,
                principal=principal.subject,
            )
            raise TokenRevokedError()

        email = await self._resolve_email(principal)
        refresh_token = await self.issue_refresh_token(
            principal, row.session_id, rotated_from_id=row.id
        )
        access_token = self.issue_access_token(AccessTokenClaims(principal=principal, email=email))

        logger.info(
            "Refresh token rotated",
            principal=principal.subject,
            session_id=row.session_id,
            rotated_from_id=row.id,
        )
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.access_token_expires_in,
            principal=principal,
            session_id=row.session_id,
        )

    async def revoke_session_tokens(self, session_id: str) -> int:
        """Revoke every active refresh token of a session. Idempotent."""
        return await self.refresh_token_repo.revoke_for_session(session_id)

    async def revoke_principal_tokens(self, principal: PrincipalRef) -> int:
        """Revoke every active refresh token of a principal. Idempotent."""
        return await self.refresh_token_repo.revoke_for_principal(principal)

    async def _resolve_email(self, principal: PrincipalRef) -> str:
        if principal.kind is PrincipalKind.EXTERNAL:
            user = await self.external_user_repo.get_by_id(principal.id)
        else:
            user = await self.internal_user_repo.get_by_id(principal.id)
        if user is None:
            logger.info("Refresh rejected: principal no longer exists", principal=principal.subject)
            raise TokenInvalidError()
        if not user.is_active:
            raise PrincipalInactiveError()
        return user.email
