"""Email providers and templates."""

from gatekeep.infrastructure.services.email.console_provider import ConsoleProvider
from gatekeep.infrastructure.services.email.email_provider import EmailProvider
from gatekeep.infrastructure.services.email.resend_provider import ResendProvider
from gatekeep.infrastructure.services.email.smtp_provider import SMTPProvider, SMTPSettings
from gatekeep.infrastructure.services.email.template_renderer import TemplateRenderer

__all__ = [
    "ConsoleProvider",
    "EmailProvider",
    "ResendProvider",
    "SMTPProvider",
    "SMTPSettings",
    "TemplateRenderer",
]
