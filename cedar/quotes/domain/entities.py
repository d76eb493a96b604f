from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from cedar.identity.domain.entities import IdentitySnapshot

# "Quotes" domain entities


class QuoteStatus(str, Enum):
    PENDING = "pending"
    REVIEWING = "reviewing"
    APPROVED = "approved"
    REJECTED = "rejected"
    CONVERTED = "converted"


class QuotePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class QuoteUserType(str, Enum):
    GUEST = "guest"
    INDIVIDUAL = "individual"
    BUSINESS = "business"
    VERIFIED = "verified"


class SenderType(str, Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"


class QuoteAction(str, Enum):
    CREATED = "created"
    STATUS_CHANGED = "status_changed"
    APPROVED = "approved"
    REJECTED = "rejected"
    CONVERTED = "converted"
    PRICING_UPDATED = "pricing_updated"
    PRIORITY_CHANGED = "priority_changed"
    MESSAGE_ADDED = "message_added"
    EXPIRED_NOTIFIED = "expired_notified"


class QuoteItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    quote_id: int
    product_name: str
    product_sku: Optional[str] = None
    product_thumbnail: Optional[str] = None
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(Decimal("0"), ge=0)
    discount_percentage: Decimal = Field(Decimal("0"), ge=0, le=100)
    total_price: Decimal = Decimal("0")


class QuoteMessage(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    quote_id: int
    sender_type: SenderType
    sender_name: str
    message: str
    is_internal: bool = False
    created_at: datetime


class QuoteAuditEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    quote_id: int
    action_type: QuoteAction
    old_status: Optional[QuoteStatus] = None
    new_status: Optional[QuoteStatus] = None
    old_total: Optional[Decimal] = None
    new_total: Optional[Decimal] = None
    actor: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class Quote(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    quote_number: str
    status: QuoteStatus
    priority: QuotePriority = QuotePriority.MEDIUM
    user_type: QuoteUserType
    clerk_user_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    notes: Optional[str] = None

    # Materialized from items by the pricing function, never edited by hand
    subtotal: Decimal = Decimal("0")
    discount_total: Decimal = Decimal("0")
    tax_total: Decimal = Decimal("0")
    estimated_total: Decimal = Decimal("0")
    tax_enabled: bool = True

    admin_notes: Optional[str] = None
    rejected_reason: Optional[str] = None
    valid_until: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    converted_at: Optional[datetime] = None
    converted_order_id: Optional[int] = None

    version: int = 1
    created_at: datetime
    updated_at: datetime

    items: List[QuoteItem] = []
    messages: List[QuoteMessage] = []

    def is_expired(self, now: datetime) -> bool:
        return self.valid_until is not None and self.valid_until < now


def user_type_for(identity: IdentitySnapshot) -> QuoteUserType:
    """Classifies the requester when the quote is submitted."""
    if not identity.is_signed_in:
        return QuoteUserType.GUEST
    if not identity.business_profile_exists:
        return QuoteUserType.INDIVIDUAL
    if identity.is_verified_business:
        return QuoteUserType.VERIFIED
    return QuoteUserType.BUSINESS
