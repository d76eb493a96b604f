import logging
from typing import Optional

from cedar.core.config import settings

from ..domain.entities import BusinessProfile, IdentitySnapshot
from ..domain.repositories import AbstractBusinessProfileRepository
from ..infrastructure.clerk import ClerkClaims

logger = logging.getLogger(__name__)


class IdentityService:
    """Turns verified Clerk claims into an IdentitySnapshot."""

    def __init__(self, profile_repo: AbstractBusinessProfileRepository):
        self.profile_repo = profile_repo

    async def snapshot_for(self, claims: Optional[ClerkClaims]) -> IdentitySnapshot:
        if claims is None:
            return IdentitySnapshot.anonymous()
        profile: Optional[BusinessProfile] = await self.profile_repo.get_for_user(claims.sub)
        snapshot = IdentitySnapshot(
            is_signed_in=True,
            clerk_user_id=claims.sub,
            email=claims.email,
            full_name=claims.name,
            is_admin=claims.role == settings.ADMIN_ROLE,
            business_profile_exists=profile is not None,
            verification_status=profile.verification_status if profile else None,
        )
        logger.debug(
            f"[IdentityService] {claims.sub}: profile={snapshot.business_profile_exists}, "
            f"verification={snapshot.verification_status}, admin={snapshot.is_admin}"
        )
        return snapshot
