from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from cedar.core.utils import utcnow


class BusinessProfileDB(SQLModel, table=True):
    __tablename__ = "business_profiles"

    id: Optional[int] = Field(default=None, primary_key=True)
    clerk_user_id: str = Field(max_length=255, unique=True, index=True)
    company_name: str = Field(max_length=255)
    gst_number: Optional[str] = Field(default=None, max_length=20)
    verification_status: str = Field(default="unverified", max_length=20)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
