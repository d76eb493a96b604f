import logging
from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy import update as sqlalchemy_update
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.entities import NotificationKind, OutboxEntry, OutboxStatus
from ..domain.repositories import AbstractNotificationOutboxRepository
from .orm import NotificationOutboxDB

logger = logging.getLogger(__name__)


class SQLAlchemyNotificationOutboxRepository(AbstractNotificationOutboxRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _commit(self, action: str) -> None:
        try:
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Outbox {action} failed: {e}", exc_info=True)
            raise

    async def add(self, recipient: str, kind: NotificationKind, payload: Dict[str, Any]) -> OutboxEntry:
        row = NotificationOutboxDB(recipient=recipient, template_kind=kind.value, payload=payload)
        self.session.add(row)
        await self._commit("insert")
        await self.session.refresh(row)
        logger.debug(f"Outbox entry {row.id} ({kind.value}) queued for {recipient}.")
        return OutboxEntry.model_validate(row)

    async def list_failed(self, max_attempts: int, limit: int) -> List[OutboxEntry]:
        stmt = (
            select(NotificationOutboxDB)
            .where(
                NotificationOutboxDB.status == OutboxStatus.FAILED.value,
                NotificationOutboxDB.attempts < max_attempts,
            )
            .order_by(NotificationOutboxDB.created_at, NotificationOutboxDB.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [OutboxEntry.model_validate(row) for row in result.scalars().all()]

    async def mark_sent(self, entry_id: int, sent_at: datetime) -> None:
        stmt = (
            sqlalchemy_update(NotificationOutboxDB)
            .where(NotificationOutboxDB.id == entry_id)
            .values(
                status=OutboxStatus.SENT.value,
                attempts=NotificationOutboxDB.attempts + 1,
                sent_at=sent_at,
                last_error=None,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
        await self._commit("mark_sent")

    async def mark_failed(self, entry_id: int, error: str) -> None:
        stmt = (
            sqlalchemy_update(NotificationOutboxDB)
            .where(NotificationOutboxDB.id == entry_id)
            .values(
                status=OutboxStatus.FAILED.value,
                attempts=NotificationOutboxDB.attempts + 1,
                last_error=error[:1000],
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
        await self._commit("mark_failed")
