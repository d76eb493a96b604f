from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class VerificationStatus(str, Enum):
    VERIFIED = "verified"
    UNVERIFIED = "unverified"
    PENDING = "pending"


class BusinessProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    clerk_user_id: str
    company_name: str
    gst_number: Optional[str] = None
    verification_status: VerificationStatus = VerificationStatus.UNVERIFIED
    created_at: datetime
    updated_at: datetime


class IdentitySnapshot(BaseModel):
    """Everything the quote and checkout rules need to know about the caller.

    Built once per request from the Clerk session and the business profile
    table, then passed explicitly to the services.
    """

    is_signed_in: bool = False
    clerk_user_id: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    is_admin: bool = False
    business_profile_exists: bool = False
    verification_status: Optional[VerificationStatus] = None

    @classmethod
    def anonymous(cls) -> "IdentitySnapshot":
        return cls()

    @property
    def is_verified_business(self) -> bool:
        return self.business_profile_exists and self.verification_status == VerificationStatus.VERIFIED
