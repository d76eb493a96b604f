from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List

from .entities import NotificationKind, OutboxEntry


class AbstractNotificationOutboxRepository(ABC):
    @abstractmethod
    async def add(self, recipient: str, kind: NotificationKind, payload: Dict[str, Any]) -> OutboxEntry:
        """Stores a pending notification."""
        raise NotImplementedError

    @abstractmethod
    async def list_failed(self, max_attempts: int, limit: int) -> List[OutboxEntry]:
        """Failed notifications that still have attempts left, oldest first."""
        raise NotImplementedError

    @abstractmethod
    async def mark_sent(self, entry_id: int, sent_at: datetime) -> None:
        raise NotImplementedError

    @abstractmethod
    async def mark_failed(self, entry_id: int, error: str) -> None:
        raise NotImplementedError
