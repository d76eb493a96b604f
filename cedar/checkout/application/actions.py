"""Action facade of the checkout resolver; every call returns an ActionResult."""

from decimal import Decimal
from typing import List, Optional

from cedar.core.results import to_result
from cedar.core.schemas import ActionResult
from cedar.identity.domain.entities import IdentitySnapshot
from cedar.orders.domain.entities import Order

from ..domain.entities import CheckoutContext, CheckoutLine, CheckoutSource, LimitValidation
from .schemas import PermissionResponse, PlaceOrderRequest
from .services import CheckoutService


async def resolve_permission(service: CheckoutService, identity: IdentitySnapshot) -> ActionResult[PermissionResponse]:
    return await to_result(service.resolve_permission(identity), "resolve_permission")


async def validate_individual_order(
    service: CheckoutService,
    identity: IdentitySnapshot,
    items: List[CheckoutLine],
    total: Optional[Decimal] = None,
) -> ActionResult[LimitValidation]:
    return await to_result(service.validate_individual_order(identity, items, total), "validate_individual_order")


async def build_checkout_context(
    service: CheckoutService,
    identity: IdentitySnapshot,
    source: CheckoutSource,
    quote_id: Optional[int] = None,
    cart_items: Optional[List[CheckoutLine]] = None,
) -> ActionResult[CheckoutContext]:
    return await to_result(
        service.build_checkout_context(identity, source, quote_id, cart_items), "build_checkout_context"
    )


async def place_order(
    service: CheckoutService, identity: IdentitySnapshot, request: PlaceOrderRequest
) -> ActionResult[Order]:
    return await to_result(service.place_order(identity, request), "place_order")
