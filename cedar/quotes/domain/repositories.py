from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from cedar.orders.domain.entities import Order

from .entities import Quote, QuoteAuditEntry, QuoteItem, QuoteMessage, QuotePriority, QuoteStatus


class AbstractQuoteRepository(ABC):
    """Abstract repository for quotes.

    Every write method is one transaction: the row changes and the audit entry
    describing them are committed together or not at all. Methods taking an
    `expected_version` raise ConcurrencyConflictError when the stored version differs.
    """

    @abstractmethod
    async def get_by_id(self, quote_id: int) -> Optional[Quote]:
        """Fetches a quote with its items and messages."""
        raise NotImplementedError

    @abstractmethod
    async def list(
        self,
        status: Optional[QuoteStatus] = None,
        priority: Optional[QuotePriority] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Quote]:
        raise NotImplementedError

    @abstractmethod
    async def count(self, status: Optional[QuoteStatus] = None, priority: Optional[QuotePriority] = None) -> int:
        raise NotImplementedError

    @abstractmethod
    async def add(self, quote_data: Dict[str, Any], items_data: List[Dict[str, Any]], audit: Dict[str, Any]) -> Quote:
        """Creates a quote with its items."""
        raise NotImplementedError

    @abstractmethod
    async def apply_changes(
        self, quote_id: int, expected_version: int, changes: Dict[str, Any], audit: Dict[str, Any]
    ) -> Quote:
        """Updates scalar quote columns (status, priority, notes...) and bumps the version."""
        raise NotImplementedError

    @abstractmethod
    async def save_pricing(
        self,
        quote_id: int,
        expected_version: int,
        items: List[QuoteItem],
        changes: Dict[str, Any],
        audit: Dict[str, Any],
    ) -> Quote:
        """Writes every item price and the quote aggregate together."""
        raise NotImplementedError

    @abstractmethod
    async def convert(
        self,
        quote_id: int,
        expected_version: int,
        place_order: Callable[[], Awaitable[Order]],
        converted_at: datetime,
        audit: Dict[str, Any],
    ) -> Tuple[Quote, Order]:
        """Claims the quote as converted, then runs `place_order` in the same transaction.

        The version-guarded claim comes first, so a concurrent conversion fails
        before any order row is written. `place_order` must not commit.
        """
        raise NotImplementedError

    @abstractmethod
    async def add_message(self, quote_id: int, message_data: Dict[str, Any], audit: Dict[str, Any]) -> QuoteMessage:
        raise NotImplementedError

    @abstractmethod
    async def add_audit_entry(self, quote_id: int, audit: Dict[str, Any]) -> QuoteAuditEntry:
        raise NotImplementedError

    @abstractmethod
    async def list_audit_entries(self, quote_id: int) -> List[QuoteAuditEntry]:
        """Audit timeline, newest first."""
        raise NotImplementedError

    @abstractmethod
    async def list_expired_unnotified(self, now: datetime) -> List[Quote]:
        """Approved quotes past valid_until that never had an expiry notification."""
        raise NotImplementedError
