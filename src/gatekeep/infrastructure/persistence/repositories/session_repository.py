"""Repository for login sessions."""

from sqlalchemy import ColumnElement, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeep.domain.entities.principal import PrincipalKind, PrincipalRef
from gatekeep.infrastructure.persistence.models import SessionModel
from gatekeep.infrastructure.persistence.timestamps import utcnow


def owner_clause(model: type, principal: PrincipalRef) -> ColumnElement[bool]:
    """Filter rows of a two-owner-column table down to one principal."""
    if principal.kind is PrincipalKind.EXTERNAL:
        return model.external_user_id == principal.id
    return model.internal_user_id == principal.id


class SessionRepository:
    """Repository for session database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(
        self,
        principal: PrincipalRef,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> SessionModel:
        """Open a new session for a principal.

        Args:
            principal: Owner of the session.
            user_agent: User agent of the login request.
            ip_address: Client IP of the login request.

        Returns:
            The new, active session.
        """
        model = SessionModel(
            external_user_id=principal.external_id,
            internal_user_id=principal.internal_id,
            user_agent=user_agent,
            ip_address=ip_address,
            created_at=utcnow(),
        )
        self.session.add(model)
        await self.session.flush()
        return model

    async def get_by_id(self, session_id: str) -> SessionModel | None:
        result = await self.session.execute(
            select(SessionModel).where(SessionModel.id == session_id)
        )
        return result.scalar_one_or_none()

    async def get_latest_active(self, principal: PrincipalRef) -> SessionModel | None:
        """Get the principal's most recently opened session that is not revoked."""
        result = await self.session.execute(
            select(SessionModel)
            .where(
                owner_clause(SessionModel, principal),
                SessionModel.revoked_at.is_(None),
            )
            .order_by(SessionModel.created_at.desc())
            .limit(1)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def count_active(self, principal: PrincipalRef) -> int:
        result = await self.session.execute(
            select(SessionModel.id).where(
                owner_clause(SessionModel, principal),
                SessionModel.revoked_at.is_(None),
            )
        )
        return len(result.all())

    async def revoke(self, session_id: str) -> bool:
        """Revoke one session.

        Returns:
            True if the session was active and is now revoked.
        """
        result = await self.session.execute(
            update(SessionModel)
            .where(
                SessionModel.id == session_id,
                SessionModel.revoked_at.is_(None),
            )
            .values(revoked_at=utcnow())
        )
        return result.rowcount > 0

    async def revoke_all_for_principal(self, principal: PrincipalRef) -> int:
        """Revoke every active session of a principal.

        Returns:
            Number of sessions revoked.
        """
        result = await self.session.execute(
            update(SessionModel)
            .where(
                owner_clause(SessionModel, principal),
                SessionModel.revoked_at.is_(None),
            )
            .values(revoked_at=utcnow())
        )
        return result.rowcount
