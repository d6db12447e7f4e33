"""Resend email provider implementation.

Uses the Resend Python SDK for email sending via Resend API.
"""

import asyncio

import resend

from gatekeep.core.logging import get_logger
from gatekeep.infrastructure.services.email.email_provider import (
    EmailProvider,
    format_sender,
)

logger = get_logger(__name__)


class ResendProvider(EmailProvider):
    """Resend email provider implementation.

    Sends emails using the Resend API via the Resend Python SDK.
    """

    name = "resend"

    def __init__(self, api_key: str) -> None:
        """Initialize the Resend provider.

        Args:
            api_key: Resend API key.
        """
        resend.api_key = api_key

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
        """Send an email via Resend.

        Raises:
            Exception: If Resend rejects the message.
        """
        params = {
            "from": format_sender(from_email, from_name),
            "to": [to],
            "subject": subject,
            "html": html_body,
            "text": text_body,
        }
        if reply_to:
            params["reply_to"] = reply_to

        try:
            # Resend SDK is synchronous, so we run it in a thread pool
            response = await asyncio.to_thread(resend.Emails.send, params)
        except Exception as e:
            error_message = str(e)
            if "Invalid API key" in error_message or "Unauthorized" in error_message:
                logger.error("Resend authentication failed", error=error_message, to=to)
            elif "rate limit" in error_message.lower():
                logger.error("Resend rate limit exceeded", error=error_message, to=to)
            else:
                logger.error("Resend API error", error=error_message, to=to)
            raise

        logger.info("Email sent via Resend", email_id=response.get("id"), to=to)

    async def test_connection(self) -> tuple[bool, str | None]:
        """Test the Resend API key with a lightweight domains listing."""
        try:
            await asyncio.to_thread(resend.Domains.list)
        except Exception as e:
            logger.error("Resend connection test failed", error=str(e))
            return False, f"Resend connection failed: {e}"
        return True, None
