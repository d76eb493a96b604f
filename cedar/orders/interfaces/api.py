import logging

from fastapi import APIRouter, Query

from cedar.core.results import as_response, to_result
from cedar.identity.interfaces.dependencies import SignedInIdentityDep

from ..domain.entities import Order
from ..domain.exceptions import OrderNotFoundException
from .dependencies import OrderRepositoryDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.get("")
async def list_my_orders(
    identity: SignedInIdentityDep,
    order_repo: OrderRepositoryDep,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    result = await to_result(order_repo.list_for_user(identity.clerk_user_id, limit, offset), "list_my_orders")
    return as_response(result)


@router.get("/{order_id}")
async def get_my_order(order_id: int, identity: SignedInIdentityDep, order_repo: OrderRepositoryDep):
    async def load() -> Order:
        order = await order_repo.get_by_id(order_id)
        # Other users' orders are reported as missing
        if order is None or (order.clerk_user_id != identity.clerk_user_id and not identity.is_admin):
            raise OrderNotFoundException(order_id)
        return order

    return as_response(await to_result(load(), "get_my_order"))
