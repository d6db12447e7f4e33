"""Unit tests for the password reset and email verification token repositories."""

from datetime import timedelta

import pytest

from gatekeep.domain.entities.email_verification import EmailVerificationToken
from gatekeep.domain.entities.password_reset import PasswordResetToken
from gatekeep.infrastructure.auth.opaque_token import hash_token
from gatekeep.infrastructure.persistence.repositories import (
    EmailVerificationRepository,
    PasswordResetRepository,
)


class TestPasswordResetRepository:
    @pytest.mark.asyncio
    async def test_create_and_lookup_by_hash(self, db_session, active_user):
        repository = PasswordResetRepository(db_session)
        entity, raw_token = PasswordResetToken.generate(active_user.id)

        await repository.create(entity)
        found = await repository.get_by_hash(hash_token(raw_token))

        assert found.id == entity.id
        assert found.external_user_id == active_user.id
        assert found.expires_at.tzinfo is not None
        assert found.is_valid()

    @pytest.mark.asyncio
    async def test_unknown_hash(self, db_session):
        repository = PasswordResetRepository(db_session)

        assert await repository.get_by_hash(hash_token("nope")) is None

    @pytest.mark.asyncio
    async def test_mark_as_used_once(self, db_session, active_user):
        repository = PasswordResetRepository(db_session)
        entity, raw_token = PasswordResetToken.generate(active_user.id)
        await repository.create(entity)

        assert await repository.mark_as_used(entity.id) is True
        assert await repository.mark_as_used(entity.id) is False
        assert (await repository.get_by_hash(hash_token(raw_token))).is_used()

    @pytest.mark.asyncio
    async def test_expired_token_is_returned_as_invalid(self, db_session, active_user):
        repository = PasswordResetRepository(db_session)
        entity, raw_token = PasswordResetToken.generate(
            active_user.id, lifetime=timedelta(seconds=-1)
        )
        await repository.create(entity)

        found = await repository.get_by_hash(hash_token(raw_token))

        assert found.is_expired()
        assert not found.is_valid()


class TestEmailVerificationRepository:
    @pytest.mark.asyncio
    async def test_create_and_lookup(self, db_session, active_user):
        repository = EmailVerificationRepository(db_session)
        entity, raw_token = EmailVerificationToken.generate(active_user.id, active_user.email)

        await repository.create(entity)
        found = await repository.get_by_hash(hash_token(raw_token), for_update=True)

        assert found.id == entity.id
        assert found.email == active_user.email
        assert not found.is_used()

    @pytest.mark.asyncio
    async def test_mark_as_used_once(self, db_session, active_user):
        repository = EmailVerificationRepository(db_session)
        entity, _ = EmailVerificationToken.generate(active_user.id, active_user.email)
        await repository.create(entity)

        assert await repository.mark_as_used(entity.id) is True
        assert await repository.mark_as_used(entity.id) is False

    @pytest.mark.asyncio
    async def test_invalidate_for_user(self, db_session, active_user):
        repository = EmailVerificationRepository(db_session)
        first, first_raw = EmailVerificationToken.generate(active_user.id, active_user.email)
        second, _ = EmailVerificationToken.generate(active_user.id, active_user.email)
        await repository.create(first)
        await repository.create(second)
        await repository.mark_as_used(second.id)

        assert await repository.invalidate_for_user(active_user.id) == 1
        assert (await repository.get_by_hash(hash_token(first_raw))).is_used()
