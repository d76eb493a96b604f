import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cedar.core.exceptions import CollaboratorFailure
from cedar.core.utils import utcnow

from ..domain.entities import BusinessProfile, VerificationStatus
from ..domain.repositories import AbstractBusinessProfileRepository
from .orm import BusinessProfileDB

logger = logging.getLogger(__name__)


class SQLAlchemyBusinessProfileRepository(AbstractBusinessProfileRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_row(self, clerk_user_id: str) -> Optional[BusinessProfileDB]:
        stmt = select(BusinessProfileDB).where(BusinessProfileDB.clerk_user_id == clerk_user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_user(self, clerk_user_id: str) -> Optional[BusinessProfile]:
        try:
            row = await self._get_row(clerk_user_id)
        except SQLAlchemyError as e:
            logger.error(f"Business profile lookup failed for {clerk_user_id}: {e}", exc_info=True)
            raise CollaboratorFailure("identity service", e)
        return BusinessProfile.model_validate(row) if row else None

    async def save(
        self,
        clerk_user_id: str,
        company_name: str,
        verification_status: VerificationStatus,
        gst_number: Optional[str] = None,
    ) -> BusinessProfile:
        row = await self._get_row(clerk_user_id)
        if row is None:
            row = BusinessProfileDB(clerk_user_id=clerk_user_id, company_name=company_name)
            self.session.add(row)
        row.company_name = company_name
        row.gst_number = gst_number
        row.verification_status = verification_status.value
        row.updated_at = utcnow()
        try:
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error saving business profile for {clerk_user_id}: {e}", exc_info=True)
            raise
        await self.session.refresh(row)
        logger.info(f"Business profile of {clerk_user_id} saved ({verification_status.value}).")
        return BusinessProfile.model_validate(row)
