"""Exceptions specific to the Quote domain."""

from typing import Optional

from cedar.core.exceptions import AccessDeniedError, NotFoundError, ValidationError


class QuoteNotFoundException(NotFoundError):
    def __init__(self, quote_id: int):
        super().__init__(f"Quote {quote_id} not found.")
        self.quote_id = quote_id


class QuoteItemNotFoundException(NotFoundError):
    def __init__(self, quote_id: int, item_id: int):
        super().__init__(f"Item {item_id} does not belong to quote {quote_id}.", field="item_id")
        self.quote_id = quote_id
        self.item_id = item_id


class QuoteValidationError(ValidationError):
    """A quote precondition failed (pricing, reason, user type, expiry...)."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, field=field)


class QuoteLockedError(ValidationError):
    """The quote is in a status that no longer accepts this kind of edit."""

    def __init__(self, quote_id: int, status: str, what: str):
        super().__init__(f"Quote {quote_id} is {status}; {what} can no longer be changed.", field="status")
        self.quote_id = quote_id
        self.status = status


class QuoteAccessDeniedError(AccessDeniedError):
    def __init__(self, quote_id: int):
        super().__init__(f"Access to quote {quote_id} is not allowed.")
        self.quote_id = quote_id
