import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from cedar.checkout.domain.eligibility import validate_shipping
from cedar.checkout.domain.entities import (
    CheckoutSource,
    CheckoutStep,
    PaymentMethod,
    ShippingMethod,
    ShippingSelection,
)
from cedar.checkout.domain.exceptions import CheckoutValidationError
from cedar.checkout.domain.repositories import AbstractPickupLocationRepository
from cedar.core.exceptions import ConcurrencyConflictError
from cedar.core.utils import format_inr, quote_reference, utcnow
from cedar.identity.domain.entities import IdentitySnapshot
from cedar.notifications.application.services import NotificationService
from cedar.notifications.domain.entities import NotificationKind
from cedar.orders.domain.entities import NewOrder, NewOrderItem, Order
from cedar.orders.domain.repositories import AbstractOrderRepository

from ..config import QuoteSettings
from ..config import settings as quote_settings
from ..domain.entities import (
    Quote,
    QuoteAction,
    QuoteItem,
    QuoteMessage,
    QuotePriority,
    QuoteStatus,
    QuoteUserType,
    SenderType,
    user_type_for,
)
from ..domain.exceptions import (
    QuoteAccessDeniedError,
    QuoteItemNotFoundException,
    QuoteLockedError,
    QuoteNotFoundException,
    QuoteValidationError,
)
from ..domain.messages import customer_visible_messages
from ..domain.pricing import (
    DISCOUNT_PERCENTAGE,
    UNIT_PRICE,
    PricingDraft,
    QuoteTotals,
    apply_item_pricing,
    compute_totals,
    line_total,
    recompute_item,
    validate_pricing_value,
)
from ..domain.repositories import AbstractQuoteRepository
from ..domain.status import can_edit_pricing, ensure_transition, is_terminal
from .schemas import (
    AdminQuoteResponse,
    ConversionResponse,
    CustomerQuoteResponse,
    ItemPricingEntry,
    PaginatedQuoteResponse,
    QuoteCreate,
)

logger = logging.getLogger(__name__)


def _audit(
    action: QuoteAction,
    actor: Optional[str],
    old_status: Optional[QuoteStatus] = None,
    new_status: Optional[QuoteStatus] = None,
    old_total=None,
    new_total=None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "action_type": action,
        "actor": actor,
        "old_status": old_status,
        "new_status": new_status,
        "old_total": old_total,
        "new_total": new_total,
        "notes": notes,
    }


def _totals_changes(totals: QuoteTotals) -> Dict[str, Any]:
    return {
        "subtotal": totals.subtotal,
        "discount_total": totals.discount,
        "tax_total": totals.tax,
        "estimated_total": totals.total,
    }


class QuoteService:
    """Application service for the quote workflow: status machine, pricing and messages."""

    def __init__(
        self,
        quote_repo: AbstractQuoteRepository,
        order_repo: AbstractOrderRepository,
        pickup_repo: AbstractPickupLocationRepository,
        notification_service: NotificationService,
        settings: QuoteSettings = quote_settings,
    ):
        self.quote_repo = quote_repo
        self.order_repo = order_repo
        self.pickup_repo = pickup_repo
        self.notification_service = notification_service
        self.settings = settings

    # --- Helpers ---

    async def _get_or_404(self, quote_id: int) -> Quote:
        quote = await self.quote_repo.get_by_id(quote_id)
        if not quote:
            logger.warning(f"[QuoteService] Quote ID {quote_id} not found.")
            raise QuoteNotFoundException(quote_id)
        return quote

    def _version(self, quote: Quote, expected_version: Optional[int]) -> int:
        """Version token for the write; a stale token from the caller fails before any check runs."""
        if expected_version is not None and expected_version != quote.version:
            logger.warning(
                f"[QuoteService] Stale version for quote {quote.id}: got {expected_version}, stored {quote.version}"
            )
            raise ConcurrencyConflictError("Quote", quote.id, expected_version)
        return quote.version

    def _totals(self, items: List[Any], tax_enabled: bool) -> QuoteTotals:
        return compute_totals(items, tax_enabled=tax_enabled, gst_rate=self.settings.GST_RATE)

    def _ensure_owner(self, quote: Quote, identity: IdentitySnapshot) -> None:
        if not identity.is_admin and (not quote.clerk_user_id or quote.clerk_user_id != identity.clerk_user_id):
            logger.warning(f"[QuoteService] Access denied to quote {quote.id} for {identity.clerk_user_id}.")
            raise QuoteAccessDeniedError(quote.id)

    def _quote_payload(self, quote: Quote, **extra: Any) -> Dict[str, Any]:
        # Only customer-visible messages may reach a notification payload
        payload = {
            "quote_id": quote.id,
            "quote_number": quote.quote_number,
            "customer_name": quote.customer_name,
            "total_display": format_inr(quote.estimated_total),
            "items": [
                {"product_name": item.product_name, "quantity": item.quantity, "total_display": format_inr(item.total_price)}
                for item in quote.items
            ],
            "messages": [
                {"sender_name": message.sender_name, "message": message.message}
                for message in customer_visible_messages(quote.messages)
            ],
        }
        payload.update(extra)
        return payload

    async def _notify(self, quote: Quote, kind: NotificationKind, **extra: Any) -> None:
        sent = await self.notification_service.notify(quote.customer_email, kind, self._quote_payload(quote, **extra))
        if not sent:
            logger.warning(f"[QuoteService] {kind.value} for quote {quote.quote_number} not delivered; kept in outbox.")

    # --- Customer side ---

    async def submit_quote(self, data: QuoteCreate, identity: IdentitySnapshot) -> AdminQuoteResponse:
        """Creates a pending quote. Items without a price are accepted and priced later by an admin."""
        customer_email = data.customer_email or identity.email
        if not identity.is_signed_in and not customer_email:
            raise QuoteValidationError("Email is required for guest quote requests", field="customer_email")

        now = utcnow()
        user_type = user_type_for(identity)
        items_data = [
            {
                **item.model_dump(),
                "total_price": line_total(item.unit_price, item.quantity, item.discount_percentage),
            }
            for item in data.items
        ]
        totals = self._totals(data.items, tax_enabled=True)
        quote_data = {
            "quote_number": quote_reference(now),
            "status": QuoteStatus.PENDING,
            "priority": QuotePriority.MEDIUM,
            "user_type": user_type,
            "clerk_user_id": identity.clerk_user_id,
            "customer_name": data.customer_name or identity.full_name,
            "customer_email": customer_email,
            "notes": data.notes,
            "tax_enabled": True,
            "created_at": now,
            "updated_at": now,
            **_totals_changes(totals),
        }
        audit = _audit(
            QuoteAction.CREATED,
            identity.clerk_user_id or customer_email,
            new_status=QuoteStatus.PENDING,
            new_total=totals.total,
        )
        quote = await self.quote_repo.add(quote_data, items_data, audit)
        logger.info(f"[QuoteService] Quote {quote.quote_number} submitted ({user_type.value}, {len(items_data)} items).")
        return AdminQuoteResponse.model_validate(quote)

    async def get_customer_quote(
        self, quote_id: int, identity: IdentitySnapshot, now: Optional[datetime] = None
    ) -> CustomerQuoteResponse:
        quote = await self._get_or_404(quote_id)
        self._ensure_owner(quote, identity)
        data = quote.model_dump()
        data["messages"] = [message.model_dump() for message in customer_visible_messages(quote.messages)]
        data["is_expired"] = quote.status == QuoteStatus.APPROVED and quote.is_expired(now or utcnow())
        return CustomerQuoteResponse.model_validate(data)

    async def send_customer_message(self, quote_id: int, identity: IdentitySnapshot, message: str) -> QuoteMessage:
        quote = await self._get_or_404(quote_id)
        self._ensure_owner(quote, identity)
        return await self.send_message(
            quote_id,
            message,
            is_internal=False,
            sender_type=SenderType.CUSTOMER,
            sender_name=identity.full_name or quote.customer_name or "Customer",
            actor=identity.clerk_user_id,
        )

    # --- Admin reads ---

    async def get_quote(self, quote_id: int) -> AdminQuoteResponse:
        return AdminQuoteResponse.model_validate(await self._get_or_404(quote_id))

    async def list_quotes(
        self,
        status: Optional[QuoteStatus] = None,
        priority: Optional[QuotePriority] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> PaginatedQuoteResponse:
        limit = min(limit or self.settings.DEFAULT_PAGE_SIZE, self.settings.MAX_PAGE_SIZE)
        logger.debug(f"[QuoteService] Listing quotes status={status} priority={priority} limit={limit} offset={offset}")
        quotes = await self.quote_repo.list(status=status, priority=priority, limit=limit, offset=offset)
        total = await self.quote_repo.count(status=status, priority=priority)
        return PaginatedQuoteResponse(items=[AdminQuoteResponse.model_validate(q) for q in quotes], total=total)

    async def get_audit_timeline(self, quote_id: int):
        await self._get_or_404(quote_id)
        return await self.quote_repo.list_audit_entries(quote_id)

    # --- Status transitions ---

    async def start_review(
        self, quote_id: int, actor: Optional[str], expected_version: Optional[int] = None
    ) -> AdminQuoteResponse:
        quote = await self._get_or_404(quote_id)
        version = self._version(quote, expected_version)
        ensure_transition(quote.status, QuoteStatus.REVIEWING)

        updated = await self.quote_repo.apply_changes(
            quote_id,
            version,
            {"status": QuoteStatus.REVIEWING},
            _audit(QuoteAction.STATUS_CHANGED, actor, quote.status, QuoteStatus.REVIEWING),
        )
        logger.info(f"[QuoteService] Quote {quote.quote_number} moved to review by {actor}.")
        return AdminQuoteResponse.model_validate(updated)

    async def approve_quote(
        self,
        quote_id: int,
        actor: Optional[str],
        admin_notes: Optional[str] = None,
        valid_days: Optional[int] = None,
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> AdminQuoteResponse:
        now = now or utcnow()
        quote = await self._get_or_404(quote_id)
        version = self._version(quote, expected_version)
        ensure_transition(quote.status, QuoteStatus.APPROVED)

        if not quote.items:
            raise QuoteValidationError("Quote has no items", field="items")
        if any(item.unit_price <= 0 for item in quote.items):
            raise QuoteValidationError("All items must have pricing before approval", field="unit_price")
        totals = self._totals(quote.items, quote.tax_enabled)
        if totals.total <= 0:
            raise QuoteValidationError("Quote must have a valid total before approval", field="estimated_total")

        valid_until = now + timedelta(days=valid_days or self.settings.VALID_DAYS)
        note = (admin_notes or "").strip() or f"Quote approved with total {format_inr(totals.total)}"
        changes = {
            "status": QuoteStatus.APPROVED,
            "approved_at": now,
            "valid_until": valid_until,
            "admin_notes": note,
            **_totals_changes(totals),
        }
        updated = await self.quote_repo.apply_changes(
            quote_id,
            version,
            changes,
            _audit(
                QuoteAction.APPROVED,
                actor,
                quote.status,
                QuoteStatus.APPROVED,
                old_total=quote.estimated_total,
                new_total=totals.total,
                notes=note,
            ),
        )
        logger.info(f"[QuoteService] Quote {quote.quote_number} approved by {actor}, valid until {valid_until:%Y-%m-%d}.")

        await self._notify(updated, NotificationKind.QUOTE_APPROVED, valid_until=f"{valid_until:%d %b %Y}")
        return AdminQuoteResponse.model_validate(updated)

    async def reject_quote(
        self,
        quote_id: int,
        actor: Optional[str],
        reason: Optional[str],
        expected_version: Optional[int] = None,
    ) -> AdminQuoteResponse:
        quote = await self._get_or_404(quote_id)
        version = self._version(quote, expected_version)
        ensure_transition(quote.status, QuoteStatus.REJECTED)

        reason = (reason or "").strip()
        if not reason:
            raise QuoteValidationError("Rejection reason is required", field="reason")

        updated = await self.quote_repo.apply_changes(
            quote_id,
            version,
            {"status": QuoteStatus.REJECTED, "rejected_reason": reason},
            _audit(QuoteAction.REJECTED, actor, quote.status, QuoteStatus.REJECTED, notes=reason),
        )
        logger.info(f"[QuoteService] Quote {quote.quote_number} rejected by {actor}.")

        await self._notify(updated, NotificationKind.QUOTE_REJECTED, reason=reason)
        return AdminQuoteResponse.model_validate(updated)

    # --- Pricing ---

    async def update_item_pricing(self, quote_id: int, item_id: int, field: str, value: Any) -> PricingDraft:
        """Previews one pricing edit. Nothing is written until save_pricing."""
        quote = await self._get_or_404(quote_id)
        if not can_edit_pricing(quote.status):
            raise QuoteLockedError(quote_id, quote.status.value, "pricing")
        items = apply_item_pricing(quote_id, quote.items, item_id, field, value)
        return PricingDraft(
            quote_id=quote_id,
            items=items,
            tax_enabled=quote.tax_enabled,
            totals=self._totals(items, quote.tax_enabled),
            stale=True,
        )

    async def save_pricing(
        self,
        quote_id: int,
        entries: List[ItemPricingEntry],
        tax_enabled: bool,
        actor: Optional[str],
        expected_version: Optional[int] = None,
    ) -> AdminQuoteResponse:
        """Writes every item price and the recomputed aggregate in one transaction."""
        quote = await self._get_or_404(quote_id)
        version = self._version(quote, expected_version)
        if not can_edit_pricing(quote.status):
            raise QuoteLockedError(quote_id, quote.status.value, "pricing")

        # Validate everything before building the new state
        stored = {item.id: item for item in quote.items}
        updates: Dict[int, Dict[str, Any]] = {}
        for entry in entries:
            if entry.id not in stored:
                raise QuoteItemNotFoundException(quote_id, entry.id)
            if entry.id in updates:
                raise QuoteValidationError(f"Item {entry.id} appears more than once", field="items")
            discount = entry.discount_percentage
            if discount is None:
                discount = stored[entry.id].discount_percentage
            updates[entry.id] = {
                UNIT_PRICE: validate_pricing_value(UNIT_PRICE, entry.unit_price),
                DISCOUNT_PERCENTAGE: validate_pricing_value(DISCOUNT_PERCENTAGE, discount),
            }

        items: List[QuoteItem] = [
            recompute_item(item.model_copy(update=updates[item.id])) if item.id in updates else recompute_item(item)
            for item in quote.items
        ]
        totals = self._totals(items, tax_enabled)
        changes = {"tax_enabled": tax_enabled, **_totals_changes(totals)}

        updated = await self.quote_repo.save_pricing(
            quote_id,
            version,
            items,
            changes,
            _audit(
                QuoteAction.PRICING_UPDATED,
                actor,
                old_total=quote.estimated_total,
                new_total=totals.total,
                notes=f"{len(updates)} items repriced, GST {'on' if tax_enabled else 'off'}",
            ),
        )
        logger.info(f"[QuoteService] Pricing saved for {quote.quote_number}: total {format_inr(totals.total)}.")
        return AdminQuoteResponse.model_validate(updated)

    # --- Messages and priority ---

    async def send_message(
        self,
        quote_id: int,
        message: str,
        is_internal: bool = False,
        sender_type: SenderType = SenderType.ADMIN,
        sender_name: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> QuoteMessage:
        """Appends to the conversation. Allowed on every status; never changes it."""
        await self._get_or_404(quote_id)
        text = (message or "").strip()
        if not text:
            raise QuoteValidationError("Message cannot be empty", field="message")
        if is_internal and sender_type != SenderType.ADMIN:
            raise QuoteValidationError("Only admins can write internal notes", field="is_internal")

        message_data = {
            "sender_type": sender_type,
            "sender_name": sender_name or self.settings.ADMIN_SENDER_NAME,
            "message": text,
            "is_internal": is_internal,
            "created_at": utcnow(),
        }
        created = await self.quote_repo.add_message(
            quote_id,
            message_data,
            _audit(QuoteAction.MESSAGE_ADDED, actor, notes="internal note" if is_internal else None),
        )
        logger.info(f"[QuoteService] Message added to quote {quote_id} by {sender_type.value} (internal={is_internal}).")
        return created

    async def update_priority(
        self,
        quote_id: int,
        priority: QuotePriority,
        actor: Optional[str],
        expected_version: Optional[int] = None,
    ) -> AdminQuoteResponse:
        quote = await self._get_or_404(quote_id)
        version = self._version(quote, expected_version)
        if is_terminal(quote.status):
            raise QuoteLockedError(quote_id, quote.status.value, "priority")
        if quote.priority == priority:
            return AdminQuoteResponse.model_validate(quote)

        updated = await self.quote_repo.apply_changes(
            quote_id,
            version,
            {"priority": priority},
            _audit(QuoteAction.PRIORITY_CHANGED, actor, notes=f"{quote.priority.value} -> {priority.value}"),
        )
        return AdminQuoteResponse.model_validate(updated)

    # --- Conversion ---

    def ensure_convertible(self, quote: Quote, now: datetime) -> None:
        """Conversion gate shared by the admin conversion and the quote checkout."""
        ensure_transition(quote.status, QuoteStatus.CONVERTED)
        if quote.user_type != QuoteUserType.VERIFIED:
            raise QuoteValidationError(
                "Only verified business accounts can convert quotes to orders", field="user_type"
            )
        if not quote.clerk_user_id:
            raise QuoteValidationError("Quote must be associated with a registered user", field="clerk_user_id")
        if quote.is_expired(now):
            raise QuoteValidationError("Quote has expired", field="valid_until")
        if not quote.items:
            raise QuoteValidationError("Quote has no items to convert", field="items")
        if any(item.unit_price <= 0 for item in quote.items):
            raise QuoteValidationError("All items must have pricing before conversion", field="unit_price")

    async def quote_for_checkout(
        self, quote_id: int, identity: IdentitySnapshot, now: Optional[datetime] = None
    ) -> Quote:
        """Locked pricing snapshot of an approved quote owned by the caller."""
        quote = await self._get_or_404(quote_id)
        if quote.clerk_user_id != identity.clerk_user_id:
            raise QuoteAccessDeniedError(quote_id)
        self.ensure_convertible(quote, now or utcnow())
        return quote

    async def convert_quote(
        self, quote: Quote, new_order: NewOrder, actor: Optional[str], now: Optional[datetime] = None
    ) -> Tuple[Quote, Order]:
        """Claims the quote and creates its order in one transaction.

        A concurrent conversion loses on the version check before its order is
        written, so a quote never ends up with two orders.

        Raises:
            ConcurrencyConflictError: the quote changed since it was read.
        """
        return await self.quote_repo.convert(
            quote.id,
            quote.version,
            lambda: self.order_repo.create_order(new_order, commit=False),
            now or utcnow(),
            _audit(
                QuoteAction.CONVERTED,
                actor,
                quote.status,
                QuoteStatus.CONVERTED,
                old_total=quote.estimated_total,
                new_total=quote.estimated_total,
            ),
        )

    def build_order(
        self,
        quote: Quote,
        shipping: ShippingSelection,
        payment_method: str,
        notes: Optional[str] = None,
    ) -> NewOrder:
        return NewOrder(
            clerk_user_id=quote.clerk_user_id,
            quote_id=quote.id,
            source=CheckoutSource.QUOTE.value,
            shipping_method=shipping.method.value,
            shipping_address=(
                shipping.address.model_dump() if shipping.method == ShippingMethod.DOORSTEP and shipping.address else None
            ),
            pickup_location_id=shipping.pickup_location_id if shipping.method == ShippingMethod.PICKUP else None,
            payment_method=payment_method,
            subtotal=quote.subtotal,
            discount=quote.discount_total,
            tax=quote.tax_total,
            total_amount=quote.estimated_total,
            currency_code=self.settings.CURRENCY,
            notes=notes or f"Converted from Quote #{quote.quote_number}",
            items=[
                NewOrderItem(
                    product_name=item.product_name,
                    product_sku=item.product_sku,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    discount_percentage=item.discount_percentage,
                    total_price=item.total_price,
                )
                for item in quote.items
            ],
        )

    async def convert_to_order(
        self,
        quote_id: int,
        actor: Optional[str],
        shipping: ShippingSelection,
        payment_method: str = PaymentMethod.COD.value,
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> ConversionResponse:
        now = now or utcnow()
        quote = await self._get_or_404(quote_id)
        self._version(quote, expected_version)
        self.ensure_convertible(quote, now)

        active_locations = await self.pickup_repo.list_active() if shipping.method == ShippingMethod.PICKUP else []
        validate_shipping(shipping, active_locations)
        if payment_method != PaymentMethod.COD:
            raise CheckoutValidationError("Only COD payment is supported", step=CheckoutStep.PAYMENT)

        new_order = self.build_order(quote, shipping, payment_method)
        updated, order = await self.convert_quote(quote, new_order, actor, now)
        logger.info(f"[QuoteService] Quote {quote.quote_number} converted to order {order.order_number} by {actor}.")

        await self.notification_service.notify(
            quote.customer_email,
            NotificationKind.ORDER_CONFIRMATION,
            order_confirmation_payload(order, quote.customer_name),
        )
        return ConversionResponse(quote=AdminQuoteResponse.model_validate(updated), order=order)

    # --- Expiry ---

    async def notify_expired_quotes(self, now: Optional[datetime] = None) -> List[int]:
        """Sends one quote_expired notification per approved quote past valid_until.

        The status is left untouched; the audit entry written first keeps a
        quote from being notified twice.
        """
        now = now or utcnow()
        expired = await self.quote_repo.list_expired_unnotified(now)
        notified: List[int] = []
        for quote in expired:
            await self.quote_repo.add_audit_entry(
                quote.id,
                _audit(QuoteAction.EXPIRED_NOTIFIED, "system", notes=f"valid_until {quote.valid_until:%Y-%m-%d}"),
            )
            await self._notify(quote, NotificationKind.QUOTE_EXPIRED, expired_on=f"{quote.valid_until:%d %b %Y}")
            notified.append(quote.id)
        if notified:
            logger.info(f"[QuoteService] Expiry notifications sent for {len(notified)} quotes.")
        return notified


def order_confirmation_payload(order: Order, customer_name: Optional[str]) -> Dict[str, Any]:
    return {
        "order_number": order.order_number,
        "customer_name": customer_name,
        "total_display": format_inr(order.total_amount),
        "items": [
            {"product_name": item.product_name, "quantity": item.quantity, "total_display": format_inr(item.total_price)}
            for item in order.items
        ],
        "shipping_method": order.shipping_method,
        "payment_method": order.payment_method.upper(),
    }
