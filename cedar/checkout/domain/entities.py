from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from cedar.core.schemas import MoneySummary

# "Checkout" domain entities


class CheckoutPermission(str, Enum):
    FULL_CHECKOUT = "full_checkout"
    INDIVIDUAL_CHECKOUT = "individual_checkout"
    BLOCKED_VERIFY = "blocked_verify"
    BLOCKED_SIGNIN = "blocked_signin"


class CheckoutSource(str, Enum):
    CART = "cart"
    QUOTE = "quote"


class ShippingMethod(str, Enum):
    DOORSTEP = "doorstep"
    PICKUP = "pickup"


class PaymentMethod(str, Enum):
    COD = "cod"


class CheckoutStep(str, Enum):
    """Where the checkout UI must send the user back when a precondition fails."""

    SIGNIN = "signin"
    VERIFICATION = "verification"
    ITEMS = "items"
    QUOTE = "quote"
    SHIPPING_METHOD = "shipping_method"
    ADDRESS = "address"
    PICKUP_LOCATION = "pickup_location"
    PAYMENT = "payment"
    LIMITS = "limits"


class OrderLimits(BaseModel):
    max_order_value: Decimal
    max_quantity_per_item: int


class PermissionPolicy(BaseModel):
    permission: CheckoutPermission
    can_place_order: bool
    can_see_prices: bool
    payment_methods: List[PaymentMethod] = []
    shipping_methods: List[ShippingMethod] = []


class DeliveryAddress(BaseModel):
    # Fields are optional so that an incomplete address reaches the address check
    name: Optional[str] = None
    phone: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    country: str = "India"


class ShippingSelection(BaseModel):
    method: Optional[ShippingMethod] = None
    address: Optional[DeliveryAddress] = None
    pickup_location_id: Optional[int] = None


class PickupLocation(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    address: str
    city: str
    state: Optional[str] = None
    pincode: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool = True


class CheckoutLine(BaseModel):
    product_name: str
    product_sku: Optional[str] = None
    product_thumbnail: Optional[str] = None
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(Decimal("0"), ge=0)
    discount_percentage: Decimal = Field(Decimal("0"), ge=0, le=100)
    total_price: Decimal = Decimal("0")


class LimitValidation(BaseModel):
    violations: List[str] = []
    can_proceed: bool = True


class CheckoutContext(BaseModel):
    source: CheckoutSource
    permission: CheckoutPermission
    policy: PermissionPolicy
    quote_id: Optional[int] = None
    limits: Optional[OrderLimits] = None
    shipping_methods: List[ShippingMethod] = []
    payment_methods: List[PaymentMethod] = []
    items: List[CheckoutLine] = []
    # Absent for tiers that may not see prices
    summary: Optional[MoneySummary] = None
    pickup_locations: List[PickupLocation] = []
    violations: List[str] = []
    can_proceed: bool = False
