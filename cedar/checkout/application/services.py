import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from cedar.core.schemas import MoneySummary
from cedar.identity.domain.entities import IdentitySnapshot
from cedar.notifications.application.services import NotificationService
from cedar.notifications.domain.entities import NotificationKind
from cedar.orders.domain.entities import NewOrder, NewOrderItem, Order
from cedar.orders.domain.repositories import AbstractOrderRepository
from cedar.quotes.application.services import QuoteService, order_confirmation_payload
from cedar.quotes.domain.entities import Quote
from cedar.quotes.domain.pricing import compute_totals, line_total

from ..config import CheckoutSettings
from ..config import settings as checkout_settings
from ..domain.eligibility import (
    check_placement_preconditions,
    ensure_can_place_order,
    permission_for,
    permission_policy,
    validate_individual_order,
)
from ..domain.entities import (
    CheckoutContext,
    CheckoutLine,
    CheckoutPermission,
    CheckoutSource,
    CheckoutStep,
    LimitValidation,
    OrderLimits,
    PickupLocation,
    ShippingMethod,
)
from ..domain.exceptions import CheckoutValidationError
from ..domain.repositories import AbstractPickupLocationRepository
from .schemas import PermissionResponse, PlaceOrderRequest

logger = logging.getLogger(__name__)

HIDDEN_PRICING = {"unit_price": Decimal("0"), "discount_percentage": Decimal("0"), "total_price": Decimal("0")}


class CheckoutService:
    """Decides who may check out, with which lines, and places the order."""

    def __init__(
        self,
        quote_service: QuoteService,
        order_repo: AbstractOrderRepository,
        pickup_repo: AbstractPickupLocationRepository,
        notification_service: NotificationService,
        settings: CheckoutSettings = checkout_settings,
    ):
        self.quote_service = quote_service
        self.order_repo = order_repo
        self.pickup_repo = pickup_repo
        self.notification_service = notification_service
        self.settings = settings

    # --- Helpers ---

    @property
    def limits(self) -> OrderLimits:
        return OrderLimits(
            max_order_value=self.settings.MAX_ORDER_VALUE,
            max_quantity_per_item=self.settings.MAX_QUANTITY_PER_ITEM,
        )

    def _limits_for(self, permission: CheckoutPermission) -> Optional[OrderLimits]:
        return self.limits if permission == CheckoutPermission.INDIVIDUAL_CHECKOUT else None

    @staticmethod
    def _cart_lines(items: List[CheckoutLine]) -> List[CheckoutLine]:
        return [
            line.model_copy(
                update={"total_price": line_total(line.unit_price, line.quantity, line.discount_percentage)}
            )
            for line in items
        ]

    @staticmethod
    def _quote_lines(quote: Quote) -> List[CheckoutLine]:
        return [
            CheckoutLine(
                product_name=item.product_name,
                product_sku=item.product_sku,
                product_thumbnail=item.product_thumbnail,
                quantity=item.quantity,
                unit_price=item.unit_price,
                discount_percentage=item.discount_percentage,
                total_price=item.total_price,
            )
            for item in quote.items
        ]

    @staticmethod
    def _quote_summary(quote: Quote) -> MoneySummary:
        # The approved quote is a locked snapshot; its stored totals are used as-is
        return MoneySummary(
            subtotal=quote.subtotal,
            discount=quote.discount_total,
            tax=quote.tax_total,
            total=quote.estimated_total,
        )

    @staticmethod
    def _cart_summary(lines: List[CheckoutLine]) -> MoneySummary:
        totals = compute_totals(lines, tax_enabled=True)
        return MoneySummary(subtotal=totals.subtotal, discount=totals.discount, tax=totals.tax, total=totals.total)

    async def _load_lines(
        self,
        identity: IdentitySnapshot,
        source: CheckoutSource,
        quote_id: Optional[int],
        cart_items: List[CheckoutLine],
    ) -> Tuple[List[CheckoutLine], MoneySummary, Optional[Quote]]:
        if source == CheckoutSource.QUOTE:
            if quote_id is None:
                raise CheckoutValidationError("Please choose the quote to check out", step=CheckoutStep.QUOTE)
            quote = await self.quote_service.quote_for_checkout(quote_id, identity)
            return self._quote_lines(quote), self._quote_summary(quote), quote

        lines = self._cart_lines(cart_items)
        return lines, self._cart_summary(lines), None

    # --- Queries ---

    async def resolve_permission(self, identity: IdentitySnapshot) -> PermissionResponse:
        policy = permission_policy(permission_for(identity))
        return PermissionResponse(
            permission=policy.permission,
            can_place_order=policy.can_place_order,
            can_see_prices=policy.can_see_prices,
        )

    async def list_pickup_locations(self) -> List[PickupLocation]:
        return await self.pickup_repo.list_active()

    async def validate_individual_order(
        self, identity: IdentitySnapshot, items: List[CheckoutLine], total: Optional[Decimal] = None
    ) -> LimitValidation:
        lines = self._cart_lines(items)
        if total is None:
            total = self._cart_summary(lines).total
        return validate_individual_order(permission_for(identity), lines, total, self.limits)

    async def build_checkout_context(
        self,
        identity: IdentitySnapshot,
        source: CheckoutSource,
        quote_id: Optional[int] = None,
        cart_items: Optional[List[CheckoutLine]] = None,
    ) -> CheckoutContext:
        """Everything the checkout page needs to render for this caller."""
        permission = permission_for(identity)
        policy = permission_policy(permission)

        if not policy.can_place_order:
            # Blocked tiers see what they picked, never a price
            lines = [line.model_copy(update=HIDDEN_PRICING) for line in (cart_items or [])]
            return CheckoutContext(
                source=source,
                permission=permission,
                policy=policy,
                quote_id=quote_id,
                items=lines,
                can_proceed=False,
            )

        lines, summary, _ = await self._load_lines(identity, source, quote_id, cart_items or [])
        limits = self._limits_for(permission)
        validation = validate_individual_order(permission, lines, summary.total, self.limits)
        return CheckoutContext(
            source=source,
            permission=permission,
            policy=policy,
            quote_id=quote_id,
            limits=limits,
            shipping_methods=policy.shipping_methods,
            payment_methods=policy.payment_methods,
            items=lines,
            summary=summary,
            pickup_locations=await self.pickup_repo.list_active(),
            violations=validation.violations,
            can_proceed=bool(lines) and validation.can_proceed,
        )

    # --- Placement ---

    async def place_order(self, identity: IdentitySnapshot, request: PlaceOrderRequest) -> Order:
        """Checks every placement precondition in checkout order, then creates the order."""
        permission = permission_for(identity)
        ensure_can_place_order(permission)

        lines, summary, quote = await self._load_lines(identity, request.source, request.quote_id, request.items)
        shipping = request.shipping
        active_locations: List[PickupLocation] = []
        if shipping is not None and shipping.method == ShippingMethod.PICKUP:
            active_locations = await self.pickup_repo.list_active()

        check_placement_preconditions(
            permission,
            lines,
            shipping,
            request.payment_method,
            active_locations,
            validate_individual_order(permission, lines, summary.total, self.limits),
        )

        if quote is not None:
            new_order = self.quote_service.build_order(quote, shipping, request.payment_method, request.notes)
        else:
            new_order = NewOrder(
                clerk_user_id=identity.clerk_user_id,
                source=CheckoutSource.CART.value,
                shipping_method=shipping.method.value,
                shipping_address=shipping.address.model_dump() if shipping.method == ShippingMethod.DOORSTEP else None,
                pickup_location_id=shipping.pickup_location_id if shipping.method == ShippingMethod.PICKUP else None,
                payment_method=request.payment_method,
                subtotal=summary.subtotal,
                discount=summary.discount,
                tax=summary.tax,
                total_amount=summary.total,
                currency_code=summary.currency,
                notes=request.notes,
                items=[
                    NewOrderItem(
                        product_name=line.product_name,
                        product_sku=line.product_sku,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        discount_percentage=line.discount_percentage,
                        total_price=line.total_price,
                    )
                    for line in lines
                ],
            )

        if quote is not None:
            _, order = await self.quote_service.convert_quote(quote, new_order, identity.clerk_user_id)
        else:
            order = await self.order_repo.create_order(new_order)
        logger.info(
            f"[CheckoutService] Order {order.order_number} placed by {identity.clerk_user_id} "
            f"({permission.value}, source={request.source.value})"
        )

        recipient = identity.email or (quote.customer_email if quote else None)
        await self.notification_service.notify(
            recipient,
            NotificationKind.ORDER_CONFIRMATION,
            order_confirmation_payload(order, identity.full_name or (quote.customer_name if quote else None)),
        )
        return order
