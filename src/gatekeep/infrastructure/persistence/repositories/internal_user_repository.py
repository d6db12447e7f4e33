"""Internal (staff) user repository for database operations."""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeep.infrastructure.persistence.models import InternalUserModel
from gatekeep.infrastructure.persistence.timestamps import utcnow


class InternalUserRepository:
    """Repository for internal user database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(self, user: InternalUserModel) -> InternalUserModel:
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: str) -> InternalUserModel | None:
        result = await self.session.execute(
            select(InternalUserModel).where(InternalUserModel.id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> InternalUserModel | None:
        result = await self.session.execute(
            select(InternalUserModel).where(InternalUserModel.email == email)
        )
        return result.scalar_one_or_none()

    async def update_password(self, user_id: str, password_hash: str) -> bool:
        result = await self.session.execute(
            update(InternalUserModel)
            .where(InternalUserModel.id == user_id)
            .values(password_hash=password_hash, updated_at=utcnow())
        )
        return result.rowcount > 0

    async def update_last_login(self, user_id: str) -> None:
        """Update the staff user's last login timestamp."""
        await self.session.execute(
            update(InternalUserModel)
            .where(InternalUserModel.id == user_id)
            .values(last_login_at=utcnow())
        )
