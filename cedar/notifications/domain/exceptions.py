"""Exceptions specific to the email/notification domain."""

from typing import Optional


class EmailDomainException(Exception):
    """Base class for email domain exceptions."""

    pass


class EmailSendingException(EmailDomainException):
    """Raised when the provider could not accept the email."""

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        full_message = f"Error while sending email: {message}"
        if original_exception:
            full_message += f" (original error: {original_exception})"
        super().__init__(full_message)
        self.original_exception = original_exception


class EmailConfigurationException(EmailDomainException):
    """Raised when the email provider is not configured."""

    pass


class EmailTemplateException(EmailDomainException):
    """Raised when an email template cannot be rendered."""

    pass
