"""External user repository for database operations."""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeep.infrastructure.persistence.models import ExternalUserModel
from gatekeep.infrastructure.persistence.timestamps import utcnow


class ExternalUserRepository:
    """Repository for external user database operations.

    Lookups by email only ever consider rows that are not soft-deleted.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(self, user: ExternalUserModel) -> ExternalUserModel:
        """Create a new external user.

        Raises:
            IntegrityError: If a live user already holds the email.
        """
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(
        self, user_id: str, include_deleted: bool = False
    ) -> ExternalUserModel | None:
        """Get an external user by ID.

        Args:
            user_id: User ID (UUID string).
            include_deleted: Whether soft-deleted users are returned.

        Returns:
            User model if found, None otherwise.
        """
        stmt = select(ExternalUserModel).where(ExternalUserModel.id == user_id)
        if not include_deleted:
            stmt = stmt.where(ExternalUserModel.deleted_at.is_(None))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> ExternalUserModel | None:
        """Get the live (not soft-deleted) external user holding an email."""
        result = await self.session.execute(
            select(ExternalUserModel).where(
                ExternalUserModel.email == email,
                ExternalUserModel.deleted_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def email_exists(self, email: str) -> bool:
        return await self.get_by_email(email) is not None

    async def activate(self, user_id: str) -> bool:
        """Mark a user active after email verification.

        Returns:
            True if the user went from inactive to active.
        """
        result = await self.session.execute(
            update(ExternalUserModel)
            .where(
                ExternalUserModel.id == user_id,
                ExternalUserModel.is_active == False,  # noqa: E712
            )
            .values(is_active=True, updated_at=utcnow())
        )
        return result.rowcount > 0

    async def update_password(self, user_id: str, password_hash: str) -> bool:
        result = await self.session.execute(
            update(ExternalUserModel)
            .where(ExternalUserModel.id == user_id)
            .values(password_hash=password_hash, updated_at=utcnow())
        )
        return result.rowcount > 0

    async def update_last_login(self, user_id: str) -> None:
        """Update the user's last login timestamp."""
        await self.session.execute(
            update(ExternalUserModel)
            .where(ExternalUserModel.id == user_id)
            .values(last_login_at=utcnow())
        )

    async def soft_delete(self, user_id: str) -> bool:
        """Soft-delete a user, freeing their email for a new registration.

        Returns:
            True if a live user was deleted.
        """
        result = await self.session.execute(
            update(ExternalUserModel)
            .where(
                ExternalUserModel.id == user_id,
                ExternalUserModel.deleted_at.is_(None),
            )
            .values(deleted_at=utcnow(), is_active=False)
        )
        return result.rowcount > 0
