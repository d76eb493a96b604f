import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cedar.core.exceptions import CollaboratorFailure
from cedar.core.utils import order_reference

from ..domain.entities import NewOrder, Order
from ..domain.repositories import AbstractOrderRepository
from .orm import OrderDB, OrderItemDB

logger = logging.getLogger(__name__)


class SQLAlchemyOrderRepository(AbstractOrderRepository):
    """SQLAlchemy implementation of the order repository."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        stmt = (
            select(OrderDB)
            .where(OrderDB.id == order_id)
            .options(selectinload(OrderDB.items))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        order_db = result.scalar_one_or_none()
        if not order_db:
            logger.debug(f"Order ID {order_id} not found in get_by_id().")
            return None
        return Order.model_validate(order_db)

    async def list_for_user(self, clerk_user_id: str, limit: int, offset: int) -> List[Order]:
        stmt = (
            select(OrderDB)
            .where(OrderDB.clerk_user_id == clerk_user_id)
            .options(selectinload(OrderDB.items))
            .order_by(OrderDB.created_at.desc(), OrderDB.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return [Order.model_validate(o_db) for o_db in result.scalars().all()]

    async def create_order(self, new_order: NewOrder, commit: bool = True) -> Order:
        order_db = OrderDB(**new_order.model_dump(exclude={"items"}))
        order_db.items = [OrderItemDB(**item.model_dump()) for item in new_order.items]
        self.session.add(order_db)
        try:
            # flush for the ID, then derive the order number from it in the same transaction
            await self.session.flush()
            order_db.order_number = order_reference(order_db.id)
            if commit:
                await self.session.commit()
            else:
                await self.session.flush()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Order creation failed for {new_order.clerk_user_id}: {e}", exc_info=True)
            raise CollaboratorFailure("order service", e)
        logger.info(f"Order {order_db.order_number} created for {new_order.clerk_user_id} ({new_order.source}).")
        return await self.get_by_id(order_db.id)
