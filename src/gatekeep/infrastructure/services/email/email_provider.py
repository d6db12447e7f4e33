"""Abstract base class for email providers.

Defines the interface that all email providers must implement.
"""

from abc import ABC, abstractmethod


class EmailProvider(ABC):
    """Abstract base class for email providers.

    All email providers (console, SMTP, Resend) must implement this interface.
    """

    name: str = "provider"

    @abstractmethod
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
        """Send an email.

        Args:
            to: Recipient email address.
            subject: Email subject line.
            html_body: HTML email body.
            text_body: Plain text email body.
            from_email: Sender email address.
            from_name: Sender display name.
            reply_to: Optional reply-to email address.

        Raises:
            Exception: If the provider could not accept the message.
        """

    @abstractmethod
    async def test_connection(self) -> tuple[bool, str | None]:
        """Test the email provider connection.

        Returns:
            Tuple of (success: bool, error_message: str | None).
        """


def format_sender(from_email: str, from_name: str | None) -> str:
    """Build an RFC 5322 ``From`` value."""
    return f"{from_name} <{from_email}>" if from_name else from_email
