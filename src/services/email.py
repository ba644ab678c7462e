"""Email delivery for magic-link sign-in."""

import logging

import httpx

from src.config import get_settings

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class EmailDeliveryError(Exception):
    """Raised when a sign-in email could not be sent."""


def render_magic_link_email(url: str) -> dict[str, str]:
    """Build the subject and bodies for a magic-link email."""
    return {
        "subject": "Sign in to your account",
        "text": f"Sign in by opening this link:\n\n{url}\n\n"
        "If you did not request this email you can safely ignore it.",
        "html": (
            f'<p>Click the link below to sign in.</p><p><a href="{url}">Sign in</a></p>'
            "<p>If you did not request this email you can safely ignore it.</p>"
        ),
    }


class EmailService:
    """Service for sending transactional email through Resend."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self.api_key = self.settings.resend_api_key
        self.sender = self.settings.email_from
        self.timeout = 10.0

    async def send_magic_link(self, email: str, url: str) -> None:
        """Send a magic link.

        In development, with no provider configured, the link is logged instead.
        """
        if not self.api_key:
            if self.settings.is_development:
                logger.info(f"Email delivery not configured, magic link for {email}: {url}")
                return
            logger.error("Email delivery not configured")
            raise EmailDeliveryError("No email provider configured")

        message = render_magic_link_email(url)
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={"from": self.sender, "to": [email], **message},
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to send magic link email: {e}")
            raise EmailDeliveryError(str(e)) from e


def get_email_service() -> EmailService:
    """Get an email service instance."""
    return EmailService()
