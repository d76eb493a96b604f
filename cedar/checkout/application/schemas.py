from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from ..domain.entities import CheckoutLine, CheckoutPermission, CheckoutSource, PaymentMethod, ShippingSelection


class CheckoutContextRequest(BaseModel):
    source: CheckoutSource = CheckoutSource.CART
    quote_id: Optional[int] = Field(None, ge=1)
    # Cart lines with the prices shown in the storefront
    items: List[CheckoutLine] = []


class IndividualValidationRequest(BaseModel):
    items: List[CheckoutLine] = Field(..., min_length=1)
    # Computed from the lines when omitted
    total: Optional[Decimal] = Field(None, ge=0)


class PlaceOrderRequest(BaseModel):
    source: CheckoutSource = CheckoutSource.CART
    quote_id: Optional[int] = Field(None, ge=1)
    items: List[CheckoutLine] = []
    shipping: Optional[ShippingSelection] = None
    payment_method: Optional[str] = PaymentMethod.COD.value
    notes: Optional[str] = None


class PermissionResponse(BaseModel):
    permission: CheckoutPermission
    can_place_order: bool
    can_see_prices: bool
