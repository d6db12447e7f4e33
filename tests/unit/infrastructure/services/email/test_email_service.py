"""Unit tests for EmailService rendering and delivery."""

import asyncio
from datetime import timedelta

import pytest

from gatekeep.core.config import Settings
from gatekeep.domain.errors import EmailDeliveryError
from gatekeep.infrastructure.services.email import templates
from gatekeep.infrastructure.services.email.console_provider import ConsoleProvider
from gatekeep.infrastructure.services.email.resend_provider import ResendProvider
from gatekeep.infrastructure.services.email.smtp_provider import SMTPProvider
from gatekeep.infrastructure.services.email_service import EmailService, build_provider


@pytest.mark.asyncio
async def test_verification_email_contains_link(email_service, outbox):
    await email_service.send_verification_email(
        "new@example.com", "tok_abc", name="New", expires_in=timedelta(hours=24)
    )

    email = outbox.last_to("new@example.com")
    assert email.subject == "Verify your Gatekeep account"
    assert "http://app.test/verify-email?token=tok_abc" in email.text_body
    assert "http://app.test/verify-email?token=tok_abc" in email.html_body
    assert "24" in email.text_body
    assert email.token == "tok_abc"


@pytest.mark.asyncio
async def test_reset_email_contains_link(email_service, outbox):
    await email_service.send_password_reset_email(
        "alice@example.com", "tok_reset", expires_in=timedelta(minutes=30)
    )

    email = outbox.last_to("alice@example.com")
    assert email.subject == "Reset your Gatekeep password"
    assert email.token == "tok_reset"
    assert "30" in email.text_body


@pytest.mark.asyncio
async def test_html_body_escapes_name(email_service, outbox):
    await email_service.send_verification_email("x@example.com", "t", name="<b>Eve</b>")

    email = outbox.last_to("x@example.com")
    assert "<b>Eve</b>" not in email.html_body
    assert "&lt;b&gt;Eve&lt;/b&gt;" in email.html_body


@pytest.mark.asyncio
async def test_provider_failure_raises_delivery_error(email_service, outbox):
    outbox.fail = True

    with pytest.raises(EmailDeliveryError) as exc_info:
        await email_service.send("x@example.com", "Hi", "<p>Hi</p>", "Hi")

    assert isinstance(exc_info.value.__cause__, ConnectionError)


@pytest.mark.asyncio
async def test_slow_provider_times_out(email_service, outbox, monkeypatch):
    async def hang(**kwargs):
        await asyncio.sleep(5)

    monkeypatch.setattr(outbox, "send_email", hang)
    email_service.send_timeout = 0.05

    with pytest.raises(EmailDeliveryError) as exc_info:
        await email_service.send("x@example.com", "Hi", "<p>Hi</p>", "Hi")

    assert isinstance(exc_info.value.__cause__, asyncio.TimeoutError)


@pytest.mark.asyncio
async def test_template_error_raises_delivery_error(email_service, outbox):
    broken = templates.EmailTemplate(
        subject="{{ missing_variable }}", html_body="", text_body=""
    )

    with pytest.raises(EmailDeliveryError):
        await email_service.send_template("x@example.com", broken, {})
    assert outbox.sent == []


def test_app_url_trailing_slash(outbox):
    service = EmailService(provider=outbox, from_email="a@b.c", app_url="http://app.test/")

    assert service.reset_url("t") == "http://app.test/reset-password?token=t"
    assert service.from_name == "Gatekeep"


class TestBuildProvider:
    def test_console_default(self):
        assert isinstance(build_provider(Settings(_env_file=None)), ConsoleProvider)

    def test_smtp(self):
        settings = Settings(_env_file=None, email_provider="smtp", smtp_host="mail.test")

        provider = build_provider(settings)

        assert isinstance(provider, SMTPProvider)
        assert provider.settings.host == "mail.test"

    def test_resend(self):
        settings = Settings(_env_file=None, email_provider="resend", resend_api_key="re_123")

        assert isinstance(build_provider(settings), ResendProvider)

    def test_from_settings(self):
        settings = Settings(
            _env_file=None,
            email_from="auth@corp.test",
            email_from_name="Corp Auth",
            email_send_timeout_seconds=3,
        )

        service = EmailService.from_settings(settings)

        assert service.from_email == "auth@corp.test"
        assert service.from_name == "Corp Auth"
        assert service.send_timeout == 3
