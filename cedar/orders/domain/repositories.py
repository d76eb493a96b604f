from abc import ABC, abstractmethod
from typing import List, Optional

from .entities import NewOrder, Order


class AbstractOrderRepository(ABC):
    """Abstract repository for orders."""

    @abstractmethod
    async def get_by_id(self, order_id: int) -> Optional[Order]:
        raise NotImplementedError

    @abstractmethod
    async def list_for_user(self, clerk_user_id: str, limit: int, offset: int) -> List[Order]:
        raise NotImplementedError

    @abstractmethod
    async def create_order(self, new_order: NewOrder, commit: bool = True) -> Order:
        """Persists the order and its items together and assigns the order number.

        With `commit=False` the rows are only flushed; the caller sharing the
        session commits or rolls back the surrounding transaction.

        Raises:
            CollaboratorFailure: the order store could not complete the write.
        """
        raise NotImplementedError
