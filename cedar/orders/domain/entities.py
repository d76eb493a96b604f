from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# "Orders" domain entities


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class OrderItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    product_name: str
    product_sku: Optional[str] = None
    quantity: int = Field(..., gt=0)
    unit_price: Decimal
    discount_percentage: Decimal = Decimal("0")
    total_price: Decimal


class Order(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    clerk_user_id: str
    quote_id: Optional[int] = None
    source: str
    shipping_method: str
    shipping_address: Optional[Dict[str, Any]] = None
    pickup_location_id: Optional[int] = None
    payment_method: str
    payment_status: PaymentStatus = PaymentStatus.PENDING
    order_status: OrderStatus = OrderStatus.PENDING
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    shipping_cost: Decimal = Decimal("0")
    total_amount: Decimal
    currency_code: str = "INR"
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    items: List[OrderItem] = []


class NewOrderItem(BaseModel):
    product_name: str
    product_sku: Optional[str] = None
    quantity: int = Field(..., gt=0)
    unit_price: Decimal
    discount_percentage: Decimal = Decimal("0")
    total_price: Decimal


class NewOrder(BaseModel):
    """Everything the order store needs; prices are already final."""

    clerk_user_id: str
    quote_id: Optional[int] = None
    source: str
    shipping_method: str
    shipping_address: Optional[Dict[str, Any]] = None
    pickup_location_id: Optional[int] = None
    payment_method: str
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total_amount: Decimal
    currency_code: str = "INR"
    notes: Optional[str] = None
    items: List[NewOrderItem] = Field(..., min_length=1)
