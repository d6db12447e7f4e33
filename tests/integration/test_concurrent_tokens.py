"""Concurrency tests against a file-backed SQLite database.

Each caller gets its own session, so competing transactions really race for
the same token row.
"""

import asyncio
import uuid

import pytest
import pytest_asyncio

from gatekeep.core.config import Settings
from gatekeep.domain.entities.audit_log import AuditAction
from gatekeep.domain.errors import AlreadyVerifiedError, TokenInvalidError
from gatekeep.infrastructure.persistence.database import DatabaseManager
from gatekeep.infrastructure.persistence.models import ExternalUserModel
from gatekeep.infrastructure.persistence.repositories import (
    AuditLogRepository,
    RefreshTokenRepository,
)
from gatekeep.infrastructure.persistence.timestamps import utcnow

pytestmark = pytest.mark.slow


@pytest_asyncio.fixture
async def file_db(tmp_path, password_hasher, user_password):
    settings = Settings(
        _env_file=None,
        environment="testing",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'race.db'}",
    )
    manager = DatabaseManager(settings)
    await manager.create_tables()

    now = utcnow()
    async with manager.session() as session:
        session.add(
            ExternalUserModel(
                id=str(uuid.uuid4()),
                email="race@example.com",
                password_hash=password_hasher.hash(user_password),
                is_active=True,
                created_at=now,
                updated_at=now,
            )
        )
        await session.commit()

    yield manager
    await manager.disconnect()


async def attempt(file_db, make_auth_service, refresh_token):
    async with file_db.session() as session:
        try:
            return await make_auth_service(session).refresh(refresh_token)
        except TokenInvalidError as e:
            return e


@pytest.mark.asyncio
async def test_concurrent_rotation_has_one_winner(file_db, make_auth_service, user_password):
    async with file_db.session() as session:
        login = await make_auth_service(session).login("race@example.com", user_password)

    results = await asyncio.gather(
        attempt(file_db, make_auth_service, login.refresh_token),
        attempt(file_db, make_auth_service, login.refresh_token),
    )

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, TokenInvalidError)]
    assert len(winners) == 1
    assert len(losers) == 1

    async with file_db.session() as session:
        chain = await RefreshTokenRepository(session).list_for_session(login.session_id)
    assert len(chain) == 2
    assert sum(1 for t in chain if t.revoked_at is None) == 1


@pytest.mark.asyncio
async def test_concurrent_logins_open_separate_sessions(
    file_db, make_auth_service, user_password
):
    async def one_login():
        async with file_db.session() as session:
            return await make_auth_service(session).login("race@example.com", user_password)

    first, second = await asyncio.gather(one_login(), one_login())

    assert first.session_id != second.session_id


async def settle(coro, *expected):
    try:
        return await coro
    except expected as e:
        return e


async def count_audit(file_db, action: AuditAction) -> int:
    async with file_db.session() as session:
        return len(await AuditLogRepository(session).list_entries(action=action.value))


@pytest.mark.asyncio
async def test_concurrent_password_resets_have_one_winner(
    file_db, make_reset_service, outbox
):
    async with file_db.session() as session:
        await make_reset_service(session).request_reset("race@example.com")
    token = outbox.last_to("race@example.com").token

    async def one_reset(new_password):
        async with file_db.session() as session:
            return await settle(
                make_reset_service(session).reset_password(token, new_password),
                TokenInvalidError,
            )

    results = await asyncio.gather(*(one_reset(f"NewPassword{i}!") for i in range(3)))

    assert sum(1 for r in results if not isinstance(r, Exception)) == 1
    assert sum(1 for r in results if isinstance(r, TokenInvalidError)) == 2
    assert await count_audit(file_db, AuditAction.PASSWORD_RESET) == 1


@pytest.mark.asyncio
async def test_concurrent_verifications_have_one_winner(file_db, make_auth_service, outbox):
    async with file_db.session() as session:
        await make_auth_service(session).register("fresh@example.com", "Password123!")
    token = outbox.last_to("fresh@example.com").token

    async def one_verify():
        async with file_db.session() as session:
            return await settle(
                make_auth_service(session).verify_email(token),
                TokenInvalidError,
                AlreadyVerifiedError,
            )

    results = await asyncio.gather(*(one_verify() for _ in range(3)))

    assert sum(1 for r in results if not isinstance(r, Exception)) == 1
    assert sum(1 for r in results if isinstance(r, AlreadyVerifiedError)) == 2
    assert await count_audit(file_db, AuditAction.EMAIL_VERIFY) == 1
