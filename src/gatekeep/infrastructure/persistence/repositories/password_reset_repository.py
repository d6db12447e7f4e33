"""Repository for password reset token operations.

Provides database operations for creating, retrieving, and consuming reset tokens.
"""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeep.domain.entities.password_reset import PasswordResetToken
from gatekeep.infrastructure.persistence.models.password_reset import PasswordResetTokenModel
from gatekeep.infrastructure.persistence.timestamps import as_utc, utcnow


class PasswordResetRepository:
    """Repository for password reset token database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    def _to_model(self, entity: PasswordResetToken) -> PasswordResetTokenModel:
        """Convert domain entity to infrastructure model."""
        return PasswordResetTokenModel(
            id=entity.id,
            external_user_id=entity.external_user_id,
            token_hash=entity.token_hash,
            expires_at=entity.expires_at,
            used_at=entity.used_at,
            created_at=entity.created_at,
        )

    def _to_entity(self, model: PasswordResetTokenModel) -> PasswordResetToken:
        """Convert infrastructure model to domain entity."""
        return PasswordResetToken(
            id=model.id,
            external_user_id=model.external_user_id,
            token_hash=model.token_hash,
            expires_at=as_utc(model.expires_at),
            created_at=as_utc(model.created_at),
            used_at=as_utc(model.used_at),
        )

    async def create(self, entity: PasswordResetToken) -> PasswordResetToken:
        """Store a new password reset token.

        Args:
            entity: The PasswordResetToken entity to store.

        Returns:
            The stored entity.
        """
        model = self._to_model(entity)
        self._session.add(model)
        await self._session.flush()
        return self._to_entity(model)

    async def get_by_hash(
        self, token_hash: str, for_update: bool = False
    ) -> PasswordResetToken | None:
        """Look up a reset token by the hash of its raw value.

        Args:
            token_hash: SHA-256 hex digest of the raw token.
            for_update: Lock the row until the transaction ends.

        Returns:
            The PasswordResetToken entity if found, None otherwise.
        """
        stmt = select(PasswordResetTokenModel).where(
            PasswordResetTokenModel.token_hash == token_hash
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def mark_as_used(self, token_id: str) -> bool:
        """Mark a reset token as used, unless it already was.

        Args:
            token_id: The token's UUID.

        Returns:
            True if this call consumed the token.
        """
        stmt = (
            update(PasswordResetTokenModel)
            .where(
                PasswordResetTokenModel.id == token_id,
                PasswordResetTokenModel.used_at.is_(None),
            )
            .values(used_at=utcnow())
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1
