"""Unit tests for PasswordResetService."""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from gatekeep.domain.entities.audit_log import AuditAction
from gatekeep.domain.entities.password_reset import PasswordResetToken
from gatekeep.domain.errors import (
    EmailDeliveryError,
    InvalidCredentialsError,
    PrincipalInactiveError,
    TokenExpiredError,
    TokenInvalidError,
)
from gatekeep.domain.services import RESET_COMPLETED_MESSAGE, RESET_REQUESTED_MESSAGE
from gatekeep.infrastructure.persistence.models import PasswordResetTokenModel
from gatekeep.infrastructure.persistence.repositories import (
    AuditLogRepository,
    PasswordResetRepository,
)


async def reset_token_count(db_session) -> int:
    return await db_session.scalar(select(func.count(PasswordResetTokenModel.id)))


class TestRequestReset:
    @pytest.mark.asyncio
    async def test_sends_link(self, reset_service, active_user, outbox, db_session):
        message = await reset_service.request_reset(active_user.email, ip="10.0.0.1")

        assert message == RESET_REQUESTED_MESSAGE
        email = outbox.last_to("alice@example.com")
        assert "/reset-password?token=" in email.text_body
        assert await reset_token_count(db_session) == 1
        entries = await AuditLogRepository(db_session).list_entries()
        assert [e.action for e in entries] == [AuditAction.PASSWORD_RESET_REQUEST]
        assert entries[0].ip_address == "10.0.0.1"

    @pytest.mark.asyncio
    async def test_unknown_email_looks_the_same(self, reset_service, outbox, db_session):
        message = await reset_service.request_reset("ghost@example.com")

        assert message == RESET_REQUESTED_MESSAGE
        assert outbox.sent == []
        assert await reset_token_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_inactive_account(self, reset_service, auth_service):
        await auth_service.register("new@example.com", "Password123!")

        with pytest.raises(PrincipalInactiveError):
            await reset_service.request_reset("new@example.com")

    @pytest.mark.asyncio
    async def test_email_failure_rolls_back(self, reset_service, active_user, outbox, db_session):
        outbox.fail = True

        with pytest.raises(EmailDeliveryError):
            await reset_service.request_reset("alice@example.com")

        assert await reset_token_count(db_session) == 0
        assert await AuditLogRepository(db_session).count_all() == 0

    @pytest.mark.asyncio
    async def test_slow_send_is_not_bounded_by_store_timeout(
        self, reset_service, active_user, outbox, db_session, monkeypatch
    ):
        deliver = outbox.send_email

        async def slow_send(**kwargs):
            await asyncio.sleep(0.3)
            await deliver(**kwargs)

        monkeypatch.setattr(outbox, "send_email", slow_send)
        reset_service.store_timeout = 0.1

        await reset_service.request_reset("alice@example.com")

        assert outbox.last_to("alice@example.com").token
        assert await reset_token_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_send_timeout_rolls_back(
        self, reset_service, active_user, outbox, db_session, monkeypatch
    ):
        async def hang(**kwargs):
            await asyncio.sleep(5)

        monkeypatch.setattr(outbox, "send_email", hang)
        reset_service.email_service.send_timeout = 0.05

        with pytest.raises(EmailDeliveryError):
            await reset_service.request_reset("alice@example.com")

        assert await reset_token_count(db_session) == 0
        assert await AuditLogRepository(db_session).count_all() == 0


class TestResetPassword:
    @pytest.mark.asyncio
    async def test_reset_changes_password(
        self, reset_service, auth_service, active_user, user_password, outbox
    ):
        await reset_service.request_reset("alice@example.com")
        token = outbox.last_to("alice@example.com").token

        message = await reset_service.reset_password(token, "BrandNew456!")

        assert message == RESET_COMPLETED_MESSAGE
        with pytest.raises(InvalidCredentialsError):
            await auth_service.login("alice@example.com", user_password)
        assert (await auth_service.login("alice@example.com", "BrandNew456!")).refresh_token

    @pytest.mark.asyncio
    async def test_reset_revokes_every_session(
        self, reset_service, auth_service, active_user, user_password, outbox
    ):
        first = await auth_service.login("alice@example.com", user_password)
        second = await auth_service.login("alice@example.com", user_password)
        await reset_service.request_reset("alice@example.com")

        await reset_service.reset_password(outbox.last_to("alice@example.com").token, "BrandNew456!")

        for login in (first, second):
            with pytest.raises(TokenInvalidError):
                await auth_service.refresh(login.refresh_token)

    @pytest.mark.asyncio
    async def test_token_is_single_use(self, reset_service, active_user, outbox):
        await reset_service.request_reset("alice@example.com")
        token = outbox.last_to("alice@example.com").token
        await reset_service.reset_password(token, "BrandNew456!")

        with pytest.raises(TokenInvalidError):
            await reset_service.reset_password(token, "Another789!")

    @pytest.mark.asyncio
    async def test_unknown_token(self, reset_service):
        with pytest.raises(TokenInvalidError):
            await reset_service.reset_password("nope", "BrandNew456!")

    @pytest.mark.asyncio
    async def test_expired_token(self, reset_service, active_user, db_session):
        entity, raw = PasswordResetToken.generate(active_user.id, lifetime=timedelta(seconds=-1))
        await PasswordResetRepository(db_session).create(entity)
        await db_session.commit()

        with pytest.raises(TokenExpiredError):
            await reset_service.reset_password(raw, "BrandNew456!")

    @pytest.mark.asyncio
    async def test_audit_records_revocations(
        self, reset_service, auth_service, active_user, user_password, outbox, db_session
    ):
        await auth_service.login("alice@example.com", user_password)
        await reset_service.request_reset("alice@example.com")

        await reset_service.reset_password(outbox.last_to("alice@example.com").token, "BrandNew456!")

        entries = await AuditLogRepository(db_session).list_entries(
            action=AuditAction.PASSWORD_RESET.value
        )
        assert entries[0].details == {"sessions_revoked": 1, "refresh_tokens_revoked": 1}


class TestVerifyResetToken:
    @pytest.mark.asyncio
    async def test_valid_token(self, reset_service, active_user, outbox):
        await reset_service.request_reset("alice@example.com")

        is_valid, expires_at = await reset_service.verify_reset_token(
            outbox.last_to("alice@example.com").token
        )

        assert is_valid is True
        assert expires_at is not None

    @pytest.mark.asyncio
    async def test_check_does_not_consume(self, reset_service, active_user, outbox):
        await reset_service.request_reset("alice@example.com")
        token = outbox.last_to("alice@example.com").token

        await reset_service.verify_reset_token(token)

        assert await reset_service.reset_password(token, "BrandNew456!") == RESET_COMPLETED_MESSAGE

    @pytest.mark.asyncio
    async def test_invalid_token(self, reset_service):
        assert await reset_service.verify_reset_token("nope") == (False, None)
