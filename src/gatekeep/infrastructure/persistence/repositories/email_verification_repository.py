"""Repository for email verification token operations."""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeep.domain.entities.email_verification import EmailVerificationToken
from gatekeep.infrastructure.persistence.models.email_verification import (
    EmailVerificationTokenModel,
)
from gatekeep.infrastructure.persistence.timestamps import as_utc, utcnow


class EmailVerificationRepository:
    """Repository for email verification token database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    def _to_model(self, entity: EmailVerificationToken) -> EmailVerificationTokenModel:
        return EmailVerificationTokenModel(
            id=entity.id,
            external_user_id=entity.external_user_id,
            email=entity.email,
            token_hash=entity.token_hash,
            expires_at=entity.expires_at,
            used_at=entity.used_at,
            created_at=entity.created_at,
        )

    def _to_entity(self, model: EmailVerificationTokenModel) -> EmailVerificationToken:
        return EmailVerificationToken(
            id=model.id,
            external_user_id=model.external_user_id,
            email=model.email,
            token_hash=model.token_hash,
            expires_at=as_utc(model.expires_at),
            created_at=as_utc(model.created_at),
            used_at=as_utc(model.used_at),
        )

    async def create(self, entity: EmailVerificationToken) -> EmailVerificationToken:
        """Store a new email verification token.

        Args:
            entity: The EmailVerificationToken entity to store.

        Returns:
            The stored entity.
        """
        model = self._to_model(entity)
        self._session.add(model)
        await self._session.flush()
        return self._to_entity(model)

    async def get_by_hash(
        self, token_hash: str, for_update: bool = False
    ) -> EmailVerificationToken | None:
        """Look up a verification token by the hash of its raw value."""
        stmt = select(EmailVerificationTokenModel).where(
            EmailVerificationTokenModel.token_hash == token_hash
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def mark_as_used(self, token_id: str) -> bool:
        """Consume a verification token.

        Returns:
            True if this call consumed the token, False if it was already used.
        """
        stmt = (
            update(EmailVerificationTokenModel)
            .where(
                EmailVerificationTokenModel.id == token_id,
                EmailVerificationTokenModel.used_at.is_(None),
            )
            .values(used_at=utcnow())
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def invalidate_for_user(self, external_user_id: str) -> int:
        """Consume every outstanding token of a user so older links stop working.

        Returns:
            Number of tokens invalidated.
        """
        stmt = (
            update(EmailVerificationTokenModel)
            .where(
                EmailVerificationTokenModel.external_user_id == external_user_id,
                EmailVerificationTokenModel.used_at.is_(None),
            )
            .values(used_at=utcnow())
        )
        result = await self._session.execute(stmt)
        return result.rowcount
