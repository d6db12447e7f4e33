"""Console email provider.

Writes outgoing mail to the log instead of delivering it. Meant for local
development, where the verification and reset links are read from the log.
"""

from gatekeep.core.logging import get_logger
from gatekeep.infrastructure.services.email.email_provider import (
    EmailProvider,
    format_sender,
)

logger = get_logger(__name__)


class ConsoleProvider(EmailProvider):
    """Email provider that logs messages."""

    name = "console"

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
        from_email: str,
        from_name: str | None = None,
        reply_to: str | None = None,
    ) -> None:
        logger.info(
            "Email (console provider)",
            sender=format_sender(from_email, from_name),
            to=to,
            subject=subject,
            body=text_body,
        )

    async def test_connection(self) -> tuple[bool, str | None]:
        return True, None
