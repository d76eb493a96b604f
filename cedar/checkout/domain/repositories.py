from abc import ABC, abstractmethod
from typing import List, Optional

from .entities import PickupLocation


class AbstractPickupLocationRepository(ABC):
    @abstractmethod
    async def list_active(self) -> List[PickupLocation]:
        raise NotImplementedError

    @abstractmethod
    async def get_by_id(self, location_id: int) -> Optional[PickupLocation]:
        raise NotImplementedError
