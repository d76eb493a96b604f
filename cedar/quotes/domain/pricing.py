"""Quote pricing math.

Everything here is pure: amounts are Decimals in rupees, nothing is rounded
along the way, and the same items always produce the same totals.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List

from pydantic import BaseModel

from .entities import QuoteItem
from .exceptions import QuoteItemNotFoundException, QuoteValidationError

GST_RATE = Decimal("0.18")
HUNDRED = Decimal("100")

UNIT_PRICE = "unit_price"
DISCOUNT_PERCENTAGE = "discount_percentage"
PRICING_FIELDS = (UNIT_PRICE, DISCOUNT_PERCENTAGE)


class QuoteTotals(BaseModel):
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal


class PricingDraft(BaseModel):
    """Edited items whose aggregate has not been saved yet."""

    quote_id: int
    items: List[QuoteItem]
    tax_enabled: bool
    totals: QuoteTotals
    stale: bool = True


def to_amount(value: Any, field: str) -> Decimal:
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise QuoteValidationError(f"{field} must be a number.", field=field)
    if not amount.is_finite():
        raise QuoteValidationError(f"{field} must be a finite number.", field=field)
    return amount


def validate_pricing_value(field: str, value: Any) -> Decimal:
    """Checks an admin-entered price or discount before anything is mutated."""
    if field not in PRICING_FIELDS:
        raise QuoteValidationError(f"'{field}' is not an editable pricing field.", field=field)
    amount = to_amount(value, field)
    if amount < 0:
        raise QuoteValidationError(f"{field} cannot be negative.", field=field)
    if field == DISCOUNT_PERCENTAGE and amount > HUNDRED:
        raise QuoteValidationError("discount_percentage cannot exceed 100.", field=field)
    return amount


def line_gross(unit_price: Decimal, quantity: int) -> Decimal:
    return unit_price * quantity


def line_discount(unit_price: Decimal, quantity: int, discount_percentage: Decimal) -> Decimal:
    return line_gross(unit_price, quantity) * discount_percentage / HUNDRED


def line_total(unit_price: Decimal, quantity: int, discount_percentage: Decimal) -> Decimal:
    # Written as gross - discount so that the item totals always add up to subtotal - discount
    return line_gross(unit_price, quantity) - line_discount(unit_price, quantity, discount_percentage)


def recompute_item(item: QuoteItem) -> QuoteItem:
    return item.model_copy(
        update={"total_price": line_total(item.unit_price, item.quantity, item.discount_percentage)}
    )


def compute_totals(items: Iterable[Any], tax_enabled: bool = True, gst_rate: Decimal = GST_RATE) -> QuoteTotals:
    """Aggregate for a set of lines exposing unit_price, quantity and discount_percentage."""
    subtotal = Decimal("0")
    discount = Decimal("0")
    for item in items:
        subtotal += line_gross(item.unit_price, item.quantity)
        discount += line_discount(item.unit_price, item.quantity, item.discount_percentage)
    taxable_base = subtotal - discount
    tax = taxable_base * gst_rate if tax_enabled else Decimal("0")
    return QuoteTotals(subtotal=subtotal, discount=discount, tax=tax, total=taxable_base + tax)


def apply_item_pricing(quote_id: int, items: List[QuoteItem], item_id: int, field: str, value: Any) -> List[QuoteItem]:
    """Returns a new item list with one field changed and that line recomputed."""
    amount = validate_pricing_value(field, value)
    if not any(item.id == item_id for item in items):
        raise QuoteItemNotFoundException(quote_id, item_id)
    return [
        recompute_item(item.model_copy(update={field: amount})) if item.id == item_id else item
        for item in items
    ]
