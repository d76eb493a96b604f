from abc import ABC, abstractmethod
from typing import Optional

from .entities import BusinessProfile, VerificationStatus


class AbstractBusinessProfileRepository(ABC):
    @abstractmethod
    async def get_for_user(self, clerk_user_id: str) -> Optional[BusinessProfile]:
        raise NotImplementedError

    @abstractmethod
    async def save(
        self,
        clerk_user_id: str,
        company_name: str,
        verification_status: VerificationStatus,
        gst_number: Optional[str] = None,
    ) -> BusinessProfile:
        """Creates or updates the profile of a user."""
        raise NotImplementedError
