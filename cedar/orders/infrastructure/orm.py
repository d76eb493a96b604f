from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, Relationship, SQLModel

from cedar.core.utils import utcnow


class OrderItemDB(SQLModel, table=True):
    __tablename__ = "order_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="orders.id", index=True)
    product_name: str = Field(max_length=255)
    product_sku: Optional[str] = Field(default=None, max_length=100)
    quantity: int
    unit_price: Decimal
    discount_percentage: Decimal = Decimal("0")
    total_price: Decimal

    order: Optional["OrderDB"] = Relationship(back_populates="items")


class OrderDB(SQLModel, table=True):
    __tablename__ = "orders"

    id: Optional[int] = Field(default=None, primary_key=True)
    # Assigned from the primary key right after the insert
    order_number: Optional[str] = Field(default=None, max_length=32, unique=True, index=True)
    clerk_user_id: str = Field(max_length=255, index=True)
    quote_id: Optional[int] = Field(default=None, foreign_key="quotes.id", index=True)
    source: str = Field(max_length=10)
    shipping_method: str = Field(max_length=20)
    shipping_address: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    pickup_location_id: Optional[int] = Field(default=None, foreign_key="pickup_locations.id")
    payment_method: str = Field(max_length=20)
    payment_status: str = Field(default="pending", max_length=20)
    order_status: str = Field(default="pending", max_length=20, index=True)
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    shipping_cost: Decimal = Decimal("0")
    total_amount: Decimal
    currency_code: str = Field(default="INR", max_length=3)
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    items: List[OrderItemDB] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"order_by": "OrderItemDB.id", "cascade": "all, delete-orphan"},
    )
