"""Email service for sending lifecycle emails.

Renders the built-in templates and hands messages to the configured provider.
Provider failures surface as ``EmailDeliveryError``; callers decide whether a
failed send is fatal.
"""

import asyncio
from datetime import timedelta

from jinja2 import TemplateError

from gatekeep.core.config import Settings
from gatekeep.core.logging import get_logger
from gatekeep.domain.errors import EmailDeliveryError
from gatekeep.infrastructure.services.email import templates
from gatekeep.infrastructure.services.email.console_provider import ConsoleProvider
from gatekeep.infrastructure.services.email.email_provider import EmailProvider
from gatekeep.infrastructure.services.email.resend_provider import ResendProvider
from gatekeep.infrastructure.services.email.smtp_provider import SMTPProvider, SMTPSettings
from gatekeep.infrastructure.services.email.template_renderer import TemplateRenderer

logger = get_logger(__name__)


def build_provider(settings: Settings) -> EmailProvider:
    """Instantiate the provider selected by ``email_provider``."""
    if settings.email_provider == "smtp":
        return SMTPProvider(SMTPSettings.from_settings(settings))
    if settings.email_provider == "resend":
        return ResendProvider(api_key=settings.resend_api_key)
    return ConsoleProvider()


class EmailService:
    """Service for sending emails."""

    def __init__(
        self,
        provider: EmailProvider,
        from_email: str,
        from_name: str | None = None,
        app_name: str = "Gatekeep",
        app_url: str = "http://localhost:3000",
        renderer: TemplateRenderer | None = None,
        send_timeout: float = 15.0,
    ) -> None:
        """Initialize the email service.

        Args:
            provider: Transport used to deliver messages.
            from_email: Sender address.
            from_name: Sender display name. Defaults to the app name.
            app_name: Product name shown in emails.
            app_url: Public frontend URL used to build links.
            renderer: Template renderer to use.
            send_timeout: Seconds the provider may take to accept one message.
        """
        self.provider = provider
        self.from_email = from_email
        self.from_name = from_name or app_name
        self.app_name = app_name
        self.app_url = app_url.rstrip("/")
        self.renderer = renderer or TemplateRenderer()
        self.send_timeout = send_timeout
        self._text_renderer = TemplateRenderer(autoescape=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailService":
        return cls(
            provider=build_provider(settings),
            from_email=settings.email_from,
            from_name=settings.email_from_name,
            app_name=settings.app_name,
            app_url=settings.app_url,
            send_timeout=settings.email_send_timeout_seconds,
        )

    async def send(self, to: str, subject: str, html: str, text: str = "") -> None:
        """Deliver one message through the provider.

        Raises:
            EmailDeliveryError: If the provider failed or did not answer in time.
        """
        try:
            await asyncio.wait_for(
                self.provider.send_email(
                    to=to,
                    subject=subject,
                    html_body=html,
                    text_body=text,
                    from_email=self.from_email,
                    from_name=self.from_name,
                ),
                timeout=self.send_timeout,
            )
        except Exception as e:
            logger.error(
                "Email delivery failed",
                provider=self.provider.name,
                to=to,
                error=str(e),
                exc_type=type(e).__name__,
            )
            raise EmailDeliveryError() from e

        logger.info("Email sent", provider=self.provider.name, to=to, subject=subject)

    async def send_template(
        self, to: str, template: templates.EmailTemplate, variables: dict[str, object]
    ) -> None:
        """Render a template and send it.

        Raises:
            EmailDeliveryError: If rendering or delivery failed.
        """
        variables = {"app_name": self.app_name, "app_url": self.app_url, **variables}
        try:
            subject = self._text_renderer.render(template.subject, variables)
            html = self.renderer.render(template.html_body, variables)
            text = self._text_renderer.render(template.text_body, variables)
        except TemplateError as e:
            raise EmailDeliveryError() from e
        await self.send(to, subject, html, text)

    def verification_url(self, token: str) -> str:
        return f"{self.app_url}/verify-email?token={token}"

    def reset_url(self, token: str) -> str:
        return f"{self.app_url}/reset-password?token={token}"

    async def send_verification_email(
        self,
        to: str,
        token: str,
        name: str | None = None,
        expires_in: timedelta = timedelta(hours=24),
    ) -> None:
        """Send the email verification link.

        Args:
            to: Recipient address.
            token: Raw verification token.
            name: Recipient display name.
            expires_in: Token lifetime, shown in the email.
        """
        await self.send_template(
            to,
            templates.VERIFICATION,
            {
                "name": name,
                "verify_url": self.verification_url(token),
                "expires_in_hours": int(expires_in.total_seconds() // 3600),
            },
        )

    async def send_password_reset_email(
        self,
        to: str,
        token: str,
        name: str | None = None,
        expires_in: timedelta = timedelta(minutes=30),
    ) -> None:
        """Send the password reset link.

        Args:
            to: Recipient address.
            token: Raw reset token.
            name: Recipient display name.
            expires_in: Token lifetime, shown in the email.
        """
        await self.send_template(
            to,
            templates.PASSWORD_RESET,
            {
                "name": name,
                "reset_url": self.reset_url(token),
                "expires_in_minutes": int(expires_in.total_seconds() // 60),
            },
        )
