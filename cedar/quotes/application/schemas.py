from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, EmailStr, Field

from cedar.checkout.domain.entities import PaymentMethod, ShippingSelection
from cedar.core.schemas import OrmBaseModel
from cedar.orders.domain.entities import Order

from ..domain.entities import (
    QuotePriority,
    QuoteStatus,
    QuoteUserType,
    SenderType,
)

# --- Input schemas ---


class QuoteItemCreate(BaseModel):
    product_name: str = Field(..., min_length=1, max_length=255)
    product_sku: Optional[str] = Field(None, max_length=100)
    product_thumbnail: Optional[str] = Field(None, max_length=500)
    quantity: int = Field(..., ge=1)
    # 0 means "price on request"
    unit_price: Decimal = Field(Decimal("0"), ge=0)
    discount_percentage: Decimal = Field(Decimal("0"), ge=0, le=100)


class QuoteCreate(BaseModel):
    customer_name: Optional[str] = Field(None, max_length=255)
    customer_email: Optional[EmailStr] = None
    notes: Optional[str] = None
    items: List[QuoteItemCreate] = Field(..., min_length=1)


class VersionedRequest(BaseModel):
    """Optional optimistic concurrency token sent back by the admin UI."""

    expected_version: Optional[int] = Field(None, ge=1)


class ApproveQuoteRequest(VersionedRequest):
    admin_notes: Optional[str] = None
    valid_days: Optional[int] = Field(None, ge=1, le=365)


class RejectQuoteRequest(VersionedRequest):
    # Emptiness is checked by the service so that the error names the field
    reason: str = ""


class ItemPricingUpdate(BaseModel):
    field: str
    # Raw value, validated by the pricing rules rather than by the request model
    value: Any


class ItemPricingEntry(BaseModel):
    id: int
    unit_price: Decimal
    # Omitted keeps the stored discount
    discount_percentage: Optional[Decimal] = None


class SavePricingRequest(VersionedRequest):
    items: List[ItemPricingEntry] = Field(..., min_length=1)
    tax_enabled: bool = True


class QuoteMessageCreate(BaseModel):
    message: str = Field(..., min_length=1)
    is_internal: bool = False


class PriorityUpdate(VersionedRequest):
    priority: QuotePriority


class ConvertQuoteRequest(VersionedRequest):
    shipping: ShippingSelection
    # Plain string so that unsupported methods get the checkout error message
    payment_method: str = PaymentMethod.COD.value


# --- Response schemas ---


class QuoteItemResponse(OrmBaseModel):
    id: int
    product_name: str
    product_sku: Optional[str] = None
    product_thumbnail: Optional[str] = None
    quantity: int
    unit_price: Decimal
    discount_percentage: Decimal
    total_price: Decimal


class QuoteMessageResponse(OrmBaseModel):
    id: int
    sender_type: SenderType
    sender_name: str
    message: str
    is_internal: bool
    created_at: datetime


class QuoteResponse(OrmBaseModel):
    id: int
    quote_number: str
    status: QuoteStatus
    priority: QuotePriority
    user_type: QuoteUserType
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    notes: Optional[str] = None
    subtotal: Decimal
    discount_total: Decimal
    tax_total: Decimal
    estimated_total: Decimal
    tax_enabled: bool
    valid_until: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    converted_order_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    items: List[QuoteItemResponse] = []
    messages: List[QuoteMessageResponse] = []


class AdminQuoteResponse(QuoteResponse):
    clerk_user_id: Optional[str] = None
    admin_notes: Optional[str] = None
    rejected_reason: Optional[str] = None
    converted_at: Optional[datetime] = None
    version: int


class CustomerQuoteResponse(QuoteResponse):
    """Customer view: internal messages removed, admin notes not exposed."""

    rejected_reason: Optional[str] = None
    is_expired: bool = False


class PaginatedQuoteResponse(BaseModel):
    items: List[AdminQuoteResponse]
    total: int


class ExpiryRunResponse(BaseModel):
    notified_quote_ids: List[int]


class ConversionResponse(BaseModel):
    quote: AdminQuoteResponse
    order: Order
