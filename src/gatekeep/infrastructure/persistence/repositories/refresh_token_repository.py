"""Repository for refresh token operations.

Refresh tokens are looked up by the SHA-256 hash of the raw value. Revocation
is a conditional write so that two requests racing on the same token cannot
both win.
"""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeep.domain.entities.principal import PrincipalRef
from gatekeep.infrastructure.persistence.models import RefreshTokenModel
from gatekeep.infrastructure.persistence.repositories.session_repository import (
    owner_clause,
)
from gatekeep.infrastructure.persistence.timestamps import utcnow


class RefreshTokenRepository:
    """Repository for refresh token database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    async def create(self, model: RefreshTokenModel) -> RefreshTokenModel:
        """Store a new refresh token.

        Args:
            model: The RefreshTokenModel to store.

        Returns:
            The stored model with updated fields.
        """
        if model.created_at is None:
            model.created_at = utcnow()
        self._session.add(model)
        await self._session.flush()
        return model

    async def get_by_hash(
        self, token_hash: str, for_update: bool = False
    ) -> RefreshTokenModel | None:
        """Look up a refresh token by its hash.

        Args:
            token_hash: SHA-256 hex digest of the raw token.
            for_update: Lock the row until the transaction ends.

        Returns:
            The RefreshTokenModel if found, None otherwise.
        """
        stmt = select(RefreshTokenModel).where(RefreshTokenModel.token_hash == token_hash)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def revoke_if_active(self, token_id: str) -> bool:
        """Revoke a refresh token unless someone else already did.

        Returns:
            True if this call revoked the token, False if it was already revoked.
        """
        stmt = (
            update(RefreshTokenModel)
            .where(
                RefreshTokenModel.id == token_id,
                RefreshTokenModel.revoked_at.is_(None),
            )
            .values(revoked_at=utcnow())
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def revoke_for_session(self, session_id: str) -> int:
        """Revoke all active refresh tokens bound to a session.

        Returns:
            Number of tokens revoked.
        """
        stmt = (
            update(RefreshTokenModel)
            .where(
                RefreshTokenModel.session_id == session_id,
                RefreshTokenModel.revoked_at.is_(None),
            )
            .values(revoked_at=utcnow())
        )
        result = await self._session.execute(stmt)
        return result.rowcount

    async def revoke_for_principal(self, principal: PrincipalRef) -> int:
        """Revoke all active refresh tokens of a principal across sessions.

        Returns:
            Number of tokens revoked.
        """
        stmt = (
            update(RefreshTokenModel)
            .where(
                owner_clause(RefreshTokenModel, principal),
                RefreshTokenModel.revoked_at.is_(None),
            )
            .values(revoked_at=utcnow())
        )
        result = await self._session.execute(stmt)
        return result.rowcount

    async def list_for_session(self, session_id: str) -> list[RefreshTokenModel]:
        """List every refresh token issued on a session, oldest first."""
        result = await self._session.execute(
            select(RefreshTokenModel)
            .where(RefreshTokenModel.session_id == session_id)
            .order_by(RefreshTokenModel.created_at.asc())
        )
        return list(result.scalars().all())
