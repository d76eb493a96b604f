import logging
from typing import Optional

import httpx

from ..config import settings
from ..domain.exceptions import EmailConfigurationException, EmailSendingException
from ..domain.sender import AbstractEmailSender

logger = logging.getLogger(__name__)


class ResendEmailSender(AbstractEmailSender):
    """Sends email through the Resend REST API."""

    def __init__(
        self,
        api_key: Optional[str] = settings.RESEND_API_KEY,
        api_url: str = settings.RESEND_API_URL,
        default_sender: str = settings.FROM_EMAIL,
        timeout: float = settings.TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.default_sender = default_sender
        self.timeout = timeout
        # An injected client is owned by the caller and left open
        self._client = client

    async def _post(self, body: dict) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if self._client is not None:
            return await self._client.post(self.api_url, json=body, headers=headers)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.api_url, json=body, headers=headers)

    async def send_email(
        self,
        recipient_email: str,
        subject: str,
        html_content: str,
        sender_email: Optional[str] = None,
    ) -> bool:
        if not self.api_key:
            raise EmailConfigurationException("EMAIL_RESEND_API_KEY is not set.")

        body = {
            "from": sender_email or self.default_sender,
            "to": [recipient_email],
            "subject": subject,
            "html": html_content,
        }
        try:
            response = await self._post(body)
        except httpx.TimeoutException as e:
            logger.error(f"[ResendEmailSender] Timeout sending to {recipient_email}")
            raise EmailSendingException("Resend request timed out", e)
        except httpx.HTTPError as e:
            logger.error(f"[ResendEmailSender] Transport error sending to {recipient_email}: {e}")
            raise EmailSendingException("Resend request failed", e)

        if response.status_code >= 400:
            logger.error(f"[ResendEmailSender] Resend answered {response.status_code}: {response.text}")
            raise EmailSendingException(f"Resend answered {response.status_code}: {response.text}")

        logger.info(f"[ResendEmailSender] Email '{subject}' accepted for {recipient_email}.")
        return True
