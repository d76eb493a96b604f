import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.entities import PickupLocation
from ..domain.repositories import AbstractPickupLocationRepository
from .orm import PickupLocationDB

logger = logging.getLogger(__name__)


class SQLAlchemyPickupLocationRepository(AbstractPickupLocationRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_active(self) -> List[PickupLocation]:
        stmt = select(PickupLocationDB).where(PickupLocationDB.is_active.is_(True)).order_by(PickupLocationDB.name)
        result = await self.session.execute(stmt)
        locations = [PickupLocation.model_validate(row) for row in result.scalars().all()]
        logger.debug(f"{len(locations)} active pickup locations.")
        return locations

    async def get_by_id(self, location_id: int) -> Optional[PickupLocation]:
        row = await self.session.get(PickupLocationDB, location_id)
        return PickupLocation.model_validate(row) if row else None
