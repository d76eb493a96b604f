"""Action facade of the quote engine.

Each function runs one QuoteService operation and returns an `ActionResult`
instead of raising, so that routers and other callers only ever see
`{success, data | error}`.
"""

from datetime import datetime
from typing import Any, List, Optional

from cedar.checkout.domain.entities import PaymentMethod, ShippingSelection
from cedar.core.results import to_result
from cedar.core.schemas import ActionResult

from ..domain.entities import QuoteMessage, QuotePriority
from ..domain.pricing import PricingDraft
from .schemas import AdminQuoteResponse, ConversionResponse, ItemPricingEntry
from .services import QuoteService


async def start_review(
    service: QuoteService, quote_id: int, actor: Optional[str], expected_version: Optional[int] = None
) -> ActionResult[AdminQuoteResponse]:
    return await to_result(service.start_review(quote_id, actor, expected_version), "start_review")


async def approve_quote(
    service: QuoteService,
    quote_id: int,
    actor: Optional[str],
    admin_notes: Optional[str] = None,
    valid_days: Optional[int] = None,
    expected_version: Optional[int] = None,
    now: Optional[datetime] = None,
) -> ActionResult[AdminQuoteResponse]:
    return await to_result(
        service.approve_quote(quote_id, actor, admin_notes, valid_days, expected_version, now),
        "approve_quote",
    )


async def reject_quote(
    service: QuoteService,
    quote_id: int,
    actor: Optional[str],
    reason: Optional[str],
    expected_version: Optional[int] = None,
) -> ActionResult[AdminQuoteResponse]:
    return await to_result(service.reject_quote(quote_id, actor, reason, expected_version), "reject_quote")


async def update_item_pricing(
    service: QuoteService, quote_id: int, item_id: int, field: str, value: Any
) -> ActionResult[PricingDraft]:
    return await to_result(service.update_item_pricing(quote_id, item_id, field, value), "update_item_pricing")


async def save_pricing(
    service: QuoteService,
    quote_id: int,
    items: List[ItemPricingEntry],
    tax_enabled: bool,
    actor: Optional[str],
    expected_version: Optional[int] = None,
) -> ActionResult[AdminQuoteResponse]:
    return await to_result(
        service.save_pricing(quote_id, items, tax_enabled, actor, expected_version),
        "save_pricing",
    )


async def send_message(
    service: QuoteService,
    quote_id: int,
    message: str,
    is_internal: bool = False,
    actor: Optional[str] = None,
) -> ActionResult[QuoteMessage]:
    return await to_result(
        service.send_message(quote_id, message, is_internal=is_internal, actor=actor),
        "send_message",
    )


async def update_priority(
    service: QuoteService,
    quote_id: int,
    priority: QuotePriority,
    actor: Optional[str],
    expected_version: Optional[int] = None,
) -> ActionResult[AdminQuoteResponse]:
    return await to_result(service.update_priority(quote_id, priority, actor, expected_version), "update_priority")


async def convert_to_order(
    service: QuoteService,
    quote_id: int,
    actor: Optional[str],
    shipping: ShippingSelection,
    payment_method: str = PaymentMethod.COD.value,
    expected_version: Optional[int] = None,
    now: Optional[datetime] = None,
) -> ActionResult[ConversionResponse]:
    return await to_result(
        service.convert_to_order(quote_id, actor, shipping, payment_method, expected_version, now),
        "convert_to_order",
    )
