from abc import ABC, abstractmethod
from typing import Optional


class AbstractEmailSender(ABC):
    """Abstract interface for a transactional email provider."""

    @abstractmethod
    async def send_email(
        self,
        recipient_email: str,
        subject: str,
        html_content: str,
        sender_email: Optional[str] = None,
    ) -> bool:
        """Sends one email.

        Args:
            recipient_email: Recipient address.
            subject: Email subject.
            html_content: Rendered HTML body.
            sender_email: Overrides the configured sender.

        Returns:
            True when the provider accepted the email.

        Raises:
            EmailSendingException: The provider rejected the request or could not be reached.
            EmailConfigurationException: The provider is not configured.
        """
        raise NotImplementedError
