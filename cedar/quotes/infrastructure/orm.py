from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlmodel import Field, Relationship, SQLModel

from cedar.core.utils import utcnow

# --- Quote items ---


class QuoteItemDB(SQLModel, table=True):
    __tablename__ = "quote_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    quote_id: int = Field(foreign_key="quotes.id", index=True)
    product_name: str = Field(max_length=255)
    product_sku: Optional[str] = Field(default=None, max_length=100)
    product_thumbnail: Optional[str] = Field(default=None, max_length=500)
    quantity: int = Field(default=1)
    unit_price: Decimal = Decimal("0")
    discount_percentage: Decimal = Decimal("0")
    total_price: Decimal = Decimal("0")

    quote: Optional["QuoteDB"] = Relationship(back_populates="items")


# --- Messages and audit trail (append-only) ---


class QuoteMessageDB(SQLModel, table=True):
    __tablename__ = "quote_messages"

    id: Optional[int] = Field(default=None, primary_key=True)
    quote_id: int = Field(foreign_key="quotes.id", index=True)
    sender_type: str = Field(max_length=20)
    sender_name: str = Field(max_length=255)
    message: str
    is_internal: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)

    quote: Optional["QuoteDB"] = Relationship(back_populates="messages")


class QuoteAuditDB(SQLModel, table=True):
    __tablename__ = "quote_audit_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    quote_id: int = Field(foreign_key="quotes.id", index=True)
    action_type: str = Field(max_length=50, index=True)
    old_status: Optional[str] = Field(default=None, max_length=20)
    new_status: Optional[str] = Field(default=None, max_length=20)
    old_total: Optional[Decimal] = None
    new_total: Optional[Decimal] = None
    actor: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


# --- Quotes ---


class QuoteDB(SQLModel, table=True):
    __tablename__ = "quotes"

    id: Optional[int] = Field(default=None, primary_key=True)
    quote_number: str = Field(max_length=32, unique=True, index=True)
    status: str = Field(default="pending", max_length=20, index=True)
    priority: str = Field(default="medium", max_length=10)
    user_type: str = Field(max_length=20)
    clerk_user_id: Optional[str] = Field(default=None, max_length=255, index=True)
    customer_name: Optional[str] = Field(default=None, max_length=255)
    customer_email: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None

    # Unscaled NUMERIC: computed amounts are stored without rounding
    subtotal: Decimal = Decimal("0")
    discount_total: Decimal = Decimal("0")
    tax_total: Decimal = Decimal("0")
    estimated_total: Decimal = Decimal("0")
    tax_enabled: bool = Field(default=True)

    admin_notes: Optional[str] = None
    rejected_reason: Optional[str] = None
    valid_until: Optional[datetime] = Field(default=None, index=True)
    approved_at: Optional[datetime] = None
    converted_at: Optional[datetime] = None
    converted_order_id: Optional[int] = None

    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    items: List[QuoteItemDB] = Relationship(
        back_populates="quote",
        sa_relationship_kwargs={"order_by": "QuoteItemDB.id", "cascade": "all, delete-orphan"},
    )
    messages: List[QuoteMessageDB] = Relationship(
        back_populates="quote",
        sa_relationship_kwargs={"order_by": "QuoteMessageDB.created_at", "cascade": "all, delete-orphan"},
    )
