from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from cedar.core.utils import utcnow


class PickupLocationDB(SQLModel, table=True):
    __tablename__ = "pickup_locations"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255)
    address: str = Field(max_length=500)
    city: str = Field(max_length=100)
    state: Optional[str] = Field(default=None, max_length=100)
    pincode: Optional[str] = Field(default=None, max_length=10)
    phone: Optional[str] = Field(default=None, max_length=20)
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=utcnow)
