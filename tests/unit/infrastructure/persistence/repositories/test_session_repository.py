"""Unit tests for SessionRepository and RefreshTokenRepository."""

from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from gatekeep.domain.entities.principal import PrincipalKind, PrincipalRef
from gatekeep.infrastructure.auth.opaque_token import generate_token, hash_token
from gatekeep.infrastructure.persistence.models import RefreshTokenModel, SessionModel
from gatekeep.infrastructure.persistence.repositories import (
    RefreshTokenRepository,
    SessionRepository,
)
from gatekeep.infrastructure.persistence.timestamps import utcnow


@pytest.fixture
def principal(active_user) -> PrincipalRef:
    return PrincipalRef(kind=PrincipalKind.EXTERNAL, id=active_user.id)


@pytest.fixture
def sessions(db_session) -> SessionRepository:
    return SessionRepository(db_session)


@pytest.fixture
def refresh_tokens(db_session) -> RefreshTokenRepository:
    return RefreshTokenRepository(db_session)


async def add_token(repo, principal, session_id, expires_in=timedelta(days=1)):
    raw = generate_token()
    model = await repo.create(
        RefreshTokenModel(
            session_id=session_id,
            external_user_id=principal.external_id,
            internal_user_id=principal.internal_id,
            token_hash=hash_token(raw),
            expires_at=utcnow() + expires_in,
        )
    )
    return model, raw


class TestSessionRepository:
    @pytest.mark.asyncio
    async def test_create_is_active(self, sessions, principal):
        row = await sessions.create(principal, user_agent="pytest", ip_address="127.0.0.1")

        assert row.id
        assert row.revoked_at is None
        assert row.external_user_id == principal.id
        assert row.internal_user_id is None
        assert await sessions.count_active(principal) == 1

    @pytest.mark.asyncio
    async def test_latest_active(self, sessions, principal):
        await sessions.create(principal)
        newest = await sessions.create(principal)

        latest = await sessions.get_latest_active(principal)

        assert latest.id == newest.id

    @pytest.mark.asyncio
    async def test_revoke_is_conditional(self, sessions, principal):
        row = await sessions.create(principal)

        assert await sessions.revoke(row.id) is True
        assert await sessions.revoke(row.id) is False
        assert await sessions.get_latest_active(principal) is None

    @pytest.mark.asyncio
    async def test_revoke_all_for_principal(self, sessions, principal):
        for _ in range(3):
            await sessions.create(principal)

        assert await sessions.revoke_all_for_principal(principal) == 3
        assert await sessions.revoke_all_for_principal(principal) == 0
        assert await sessions.count_active(principal) == 0

    @pytest.mark.asyncio
    async def test_owner_columns_are_exclusive(self, db_session, active_user, staff_user):
        db_session.add(
            SessionModel(
                external_user_id=active_user.id,
                internal_user_id=staff_user.id,
                created_at=utcnow(),
            )
        )

        with pytest.raises(IntegrityError):
            await db_session.flush()
        await db_session.rollback()

    @pytest.mark.asyncio
    async def test_session_needs_an_owner(self, db_session):
        db_session.add(SessionModel(created_at=utcnow()))

        with pytest.raises(IntegrityError):
            await db_session.flush()
        await db_session.rollback()


class TestRefreshTokenRepository:
    @pytest.mark.asyncio
    async def test_get_by_hash(self, sessions, refresh_tokens, principal):
        row = await sessions.create(principal)
        token, raw = await add_token(refresh_tokens, principal, row.id)

        found = await refresh_tokens.get_by_hash(hash_token(raw), for_update=True)

        assert found.id == token.id
        assert await refresh_tokens.get_by_hash(hash_token("unknown")) is None

    @pytest.mark.asyncio
    async def test_revoke_if_active_wins_once(self, sessions, refresh_tokens, principal):
        row = await sessions.create(principal)
        token, _ = await add_token(refresh_tokens, principal, row.id)

        assert await refresh_tokens.revoke_if_active(token.id) is True
        assert await refresh_tokens.revoke_if_active(token.id) is False

    @pytest.mark.asyncio
    async def test_revoke_for_session(self, sessions, refresh_tokens, principal):
        first = await sessions.create(principal)
        second = await sessions.create(principal)
        await add_token(refresh_tokens, principal, first.id)
        await add_token(refresh_tokens, principal, first.id)
        await add_token(refresh_tokens, principal, second.id)

        assert await refresh_tokens.revoke_for_session(first.id) == 2
        assert await refresh_tokens.revoke_for_session(first.id) == 0

    @pytest.mark.asyncio
    async def test_revoke_for_principal(self, sessions, refresh_tokens, principal):
        first = await sessions.create(principal)
        second = await sessions.create(principal)
        await add_token(refresh_tokens, principal, first.id)
        await add_token(refresh_tokens, principal, second.id)

        assert await refresh_tokens.revoke_for_principal(principal) == 2

    @pytest.mark.asyncio
    async def test_list_for_session_follows_rotation(self, sessions, refresh_tokens, principal):
        row = await sessions.create(principal)
        first, _ = await add_token(refresh_tokens, principal, row.id)
        second = await refresh_tokens.create(
            RefreshTokenModel(
                session_id=row.id,
                external_user_id=principal.id,
                token_hash=hash_token(generate_token()),
                expires_at=utcnow() + timedelta(days=1),
                rotated_from_id=first.id,
            )
        )

        chain = await refresh_tokens.list_for_session(row.id)

        assert [t.id for t in chain] == [first.id, second.id]
        assert chain[1].rotated_from_id == first.id

    @pytest.mark.asyncio
    async def test_token_hash_unique(self, sessions, refresh_tokens, principal, db_session):
        row = await sessions.create(principal)
        token, _ = await add_token(refresh_tokens, principal, row.id)

        with pytest.raises(IntegrityError):
            await refresh_tokens.create(
                RefreshTokenModel(
                    session_id=row.id,
                    external_user_id=principal.id,
                    token_hash=token.token_hash,
                    expires_at=utcnow(),
                )
            )
        await db_session.rollback()
