from typing import Iterable, List

from .entities import QuoteMessage


def customer_visible_messages(messages: Iterable[QuoteMessage]) -> List[QuoteMessage]:
    """Drops internal notes. Every customer-facing view and email payload goes through here."""
    return [message for message in messages if not message.is_internal]
