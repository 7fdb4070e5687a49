# backend/activityhub/services/email.py
"""
Email delivery.

``EMAIL_PROVIDER=resend`` sends through the Resend API; ``console`` (the
default) only logs, which is what development and tests use.
"""

import logging
import re
from typing import Any, Dict, Optional

import resend

from ..core.config import settings
from ..core.exceptions import ServiceException

logger = logging.getLogger(__name__)


def _html_to_text(html_content: str) -> str:
    text = re.sub(r"<[^>]+>", "", html_content)
    return re.sub(r"\s+", " ", text).strip()


class EmailService:
    """Sends transactional email through the configured provider."""

    def __init__(self, provider: Optional[str] = None):
        self.provider = provider or settings.email_provider
        self.from_email = settings.from_email
        if self.provider == "resend":
            if not settings.resend_api_key:
                raise ServiceException("Resend API key not configured")
            resend.api_key = settings.resend_api_key

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send one email.

        Raises:
            ServiceException: If the provider rejects the message
        """
        text_content = text_content or _html_to_text(html_content)

        if self.provider == "console":
            logger.info(
                "Email (console) to %s: %s",
                to_email,
                subject,
                extra={"to_email": to_email, "subject": subject, "body": text_content},
            )
            return {"id": None, "provider": "console"}

        try:
            response = resend.Emails.send(
                {
                    "from": self.from_email,
                    "to": to_email,
                    "subject": subject,
                    "html": html_content,
                    "text": text_content,
                }
            )
        except Exception as e:
            logger.error(f"Failed to send email to {to_email}: {type(e).__name__}: {e}")
            raise ServiceException(f"Email sending failed: {e}") from e

        logger.info(f"Email sent successfully to {to_email} - Subject: {subject}")
        return dict(response) if response else {}
