from decimal import Decimal
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class OrmBaseModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ActionResult(BaseModel, Generic[T]):
    """Envelope returned by every public operation: `success` plus `data` or `error`."""

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    field: Optional[str] = None


class MoneySummary(BaseModel):
    """Monetary snapshot; values are exact and only rounded when formatted."""

    subtotal: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    currency: str = "INR"
