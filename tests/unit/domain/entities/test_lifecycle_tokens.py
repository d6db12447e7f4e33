"""Unit tests for password reset and email verification token entities."""

from datetime import datetime, timedelta, timezone

import pytest

from gatekeep.domain.entities.audit_log import AuditAction, AuditLog
from gatekeep.domain.entities.email_verification import EmailVerificationToken
from gatekeep.domain.entities.password_reset import PasswordResetToken
from gatekeep.domain.entities.principal import PrincipalKind, PrincipalRef
from gatekeep.infrastructure.auth.opaque_token import hash_token


class TestPasswordResetToken:
    def test_generate_stores_hash_only(self):
        entity, raw_token = PasswordResetToken.generate("user-1")

        assert entity.external_user_id == "user-1"
        assert entity.token_hash == hash_token(raw_token)
        assert raw_token not in entity.token_hash
        assert entity.is_valid()

    def test_generate_uses_lifetime(self):
        before = datetime.now(timezone.utc)
        entity, _ = PasswordResetToken.generate("user-1", lifetime=timedelta(minutes=5))

        assert before + timedelta(minutes=5) <= entity.expires_at
        assert entity.expires_at <= datetime.now(timezone.utc) + timedelta(minutes=5)

    def test_expired(self):
        entity, _ = PasswordResetToken.generate("user-1")

        assert entity.is_expired(now=entity.expires_at)

        entity.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
        assert entity.is_expired()
        assert not entity.is_valid()

    def test_used(self):
        entity, _ = PasswordResetToken.generate("user-1")
        entity.used_at = datetime.now(timezone.utc)

        assert entity.is_used()
        assert not entity.is_valid()


class TestEmailVerificationToken:
    def test_generate(self):
        entity, raw_token = EmailVerificationToken.generate("user-1", "a@example.com")

        assert entity.email == "a@example.com"
        assert entity.token_hash == hash_token(raw_token)
        assert not entity.is_used()
        assert not entity.is_expired()

    def test_tokens_are_unique(self):
        _, first = EmailVerificationToken.generate("user-1", "a@example.com")
        _, second = EmailVerificationToken.generate("user-1", "a@example.com")

        assert first != second


class TestAuditLog:
    def test_for_actor_external(self):
        actor = PrincipalRef(kind=PrincipalKind.EXTERNAL, id="u-1")
        entry = AuditLog.for_actor(AuditAction.LOGIN, actor)

        assert entry.external_user_id == "u-1"
        assert entry.internal_user_id is None
        assert entry.actor == actor

    def test_for_actor_none(self):
        entry = AuditLog.for_actor(AuditAction.LOGIN, None)

        assert entry.actor is None

    def test_action_coerced_from_string(self):
        assert AuditLog(action="LOGOUT").action is AuditAction.LOGOUT

    def test_two_actors_rejected(self):
        with pytest.raises(ValueError):
            AuditLog(action=AuditAction.LOGIN, external_user_id="e", internal_user_id="i")
