"""Unit tests for ExternalUserRepository against in-memory SQLite."""

import uuid

import pytest
from sqlalchemy.exc import IntegrityError

from gatekeep.infrastructure.persistence.models import ExternalUserModel
from gatekeep.infrastructure.persistence.repositories import ExternalUserRepository
from gatekeep.infrastructure.persistence.timestamps import utcnow


def make_user(email: str = "bob@example.com", is_active: bool = False) -> ExternalUserModel:
    now = utcnow()
    return ExternalUserModel(
        id=str(uuid.uuid4()),
        email=email,
        password_hash="$argon2id$fake",
        is_active=is_active,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def repository(db_session) -> ExternalUserRepository:
    return ExternalUserRepository(db_session)


@pytest.mark.asyncio
async def test_create_and_get(repository, db_session):
    user = await repository.create(make_user())
    await db_session.commit()

    assert (await repository.get_by_id(user.id)).email == "bob@example.com"
    assert (await repository.get_by_email("bob@example.com")).id == user.id
    assert await repository.email_exists("bob@example.com") is True
    assert await repository.email_exists("nobody@example.com") is False


@pytest.mark.asyncio
async def test_duplicate_live_email_rejected(repository, db_session):
    await repository.create(make_user())
    await db_session.commit()

    with pytest.raises(IntegrityError):
        await repository.create(make_user())
    await db_session.rollback()


@pytest.mark.asyncio
async def test_soft_deleted_email_can_be_reused(repository, db_session):
    first = await repository.create(make_user())
    await db_session.commit()

    assert await repository.soft_delete(first.id) is True
    await db_session.commit()

    second = await repository.create(make_user())
    await db_session.commit()

    assert (await repository.get_by_email("bob@example.com")).id == second.id
    assert await repository.get_by_id(first.id) is None
    assert (await repository.get_by_id(first.id, include_deleted=True)).id == first.id


@pytest.mark.asyncio
async def test_soft_delete_twice(repository, db_session):
    user = await repository.create(make_user())

    assert await repository.soft_delete(user.id) is True
    assert await repository.soft_delete(user.id) is False


@pytest.mark.asyncio
async def test_activate_is_conditional(repository, db_session):
    user = await repository.create(make_user(is_active=False))

    assert await repository.activate(user.id) is True
    assert await repository.activate(user.id) is False
    assert (await repository.get_by_id(user.id)).is_active is True


@pytest.mark.asyncio
async def test_update_password(repository, db_session):
    user = await repository.create(make_user())

    assert await repository.update_password(user.id, "$argon2id$new") is True
    assert await repository.update_password("missing", "$argon2id$new") is False
    assert (await repository.get_by_id(user.id)).password_hash == "$argon2id$new"


@pytest.mark.asyncio
async def test_update_last_login(repository, db_session):
    user = await repository.create(make_user())

    await repository.update_last_login(user.id)

    assert (await repository.get_by_id(user.id)).last_login_at is not None
