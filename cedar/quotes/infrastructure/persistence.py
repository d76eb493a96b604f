import logging
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from sqlalchemy import and_, exists, func, select
from sqlalchemy import update as sqlalchemy_update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cedar.core.exceptions import ConcurrencyConflictError
from cedar.core.utils import utcnow
from cedar.orders.domain.entities import Order

from ..domain.entities import (
    Quote,
    QuoteAction,
    QuoteAuditEntry,
    QuoteItem,
    QuoteMessage,
    QuotePriority,
    QuoteStatus,
)
from ..domain.exceptions import QuoteItemNotFoundException, QuoteNotFoundException
from ..domain.repositories import AbstractQuoteRepository
from .orm import QuoteAuditDB, QuoteDB, QuoteItemDB, QuoteMessageDB

logger = logging.getLogger(__name__)


def _plain(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value.value if isinstance(value, Enum) else value for key, value in values.items()}


class SQLAlchemyQuoteRepository(AbstractQuoteRepository):
    """SQLAlchemy implementation of the quote repository."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _base_query(self):
        return select(QuoteDB).options(
            selectinload(QuoteDB.items),
            selectinload(QuoteDB.messages),
        )

    def _audit_row(self, quote_id: int, audit: Dict[str, Any]) -> QuoteAuditDB:
        return QuoteAuditDB(quote_id=quote_id, **_plain(audit))

    async def get_by_id(self, quote_id: int) -> Optional[Quote]:
        stmt = (
            self._base_query()
            .where(QuoteDB.id == quote_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        quote_db = result.scalar_one_or_none()
        if not quote_db:
            logger.debug(f"Quote ID {quote_id} not found in get_by_id().")
            return None
        return Quote.model_validate(quote_db)

    def _filtered(self, stmt, status: Optional[QuoteStatus], priority: Optional[QuotePriority]):
        if status is not None:
            stmt = stmt.where(QuoteDB.status == status.value)
        if priority is not None:
            stmt = stmt.where(QuoteDB.priority == priority.value)
        return stmt

    async def list(
        self,
        status: Optional[QuoteStatus] = None,
        priority: Optional[QuotePriority] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Quote]:
        stmt = self._filtered(self._base_query(), status, priority)
        stmt = stmt.order_by(QuoteDB.created_at.desc(), QuoteDB.id.desc()).limit(limit).offset(offset)
        result = await self.session.execute(stmt)
        return [Quote.model_validate(q_db) for q_db in result.scalars().all()]

    async def count(self, status: Optional[QuoteStatus] = None, priority: Optional[QuotePriority] = None) -> int:
        stmt = self._filtered(select(func.count(QuoteDB.id)), status, priority)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def add(self, quote_data: Dict[str, Any], items_data: List[Dict[str, Any]], audit: Dict[str, Any]) -> Quote:
        new_quote_db = QuoteDB(**_plain(quote_data))
        new_quote_db.items = [QuoteItemDB(**item) for item in items_data]
        self.session.add(new_quote_db)
        try:
            # flush to get the quote ID before writing the audit entry
            await self.session.flush()
            self.session.add(self._audit_row(new_quote_db.id, audit))
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Unexpected error adding quote {quote_data.get('quote_number')}: {e}", exc_info=True)
            raise
        logger.info(f"Quote ID {new_quote_db.id} ({new_quote_db.quote_number}) added.")
        return await self.get_by_id(new_quote_db.id)

    async def _guarded_update(self, quote_id: int, expected_version: int, values: Dict[str, Any]) -> None:
        """Version-checked UPDATE of the quote row. Must run inside the caller's try block."""
        stmt = (
            sqlalchemy_update(QuoteDB)
            .where(QuoteDB.id == quote_id, QuoteDB.version == expected_version)
            .values(**_plain(values), version=QuoteDB.version + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 1:
            return
        await self.session.rollback()
        still_there = await self.session.execute(select(QuoteDB.version).where(QuoteDB.id == quote_id))
        if still_there.scalar_one_or_none() is None:
            raise QuoteNotFoundException(quote_id)
        logger.warning(f"Version mismatch on quote {quote_id} (expected {expected_version}).")
        raise ConcurrencyConflictError("Quote", quote_id, expected_version)

    async def apply_changes(
        self, quote_id: int, expected_version: int, changes: Dict[str, Any], audit: Dict[str, Any]
    ) -> Quote:
        try:
            await self._guarded_update(quote_id, expected_version, changes)
            self.session.add(self._audit_row(quote_id, audit))
            await self.session.commit()
        except (ConcurrencyConflictError, QuoteNotFoundException):
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Unexpected error updating quote {quote_id}: {e}", exc_info=True)
            raise
        logger.info(f"Quote ID {quote_id} updated: {sorted(changes)}.")
        return await self.get_by_id(quote_id)

    async def save_pricing(
        self,
        quote_id: int,
        expected_version: int,
        items: List[QuoteItem],
        changes: Dict[str, Any],
        audit: Dict[str, Any],
    ) -> Quote:
        try:
            await self._guarded_update(quote_id, expected_version, changes)
            for item in items:
                stmt = (
                    sqlalchemy_update(QuoteItemDB)
                    .where(QuoteItemDB.id == item.id, QuoteItemDB.quote_id == quote_id)
                    .values(
                        unit_price=item.unit_price,
                        discount_percentage=item.discount_percentage,
                        total_price=item.total_price,
                    )
                    .execution_options(synchronize_session=False)
                )
                result = await self.session.execute(stmt)
                if result.rowcount != 1:
                    raise QuoteItemNotFoundException(quote_id, item.id)
            self.session.add(self._audit_row(quote_id, audit))
            await self.session.commit()
        except (ConcurrencyConflictError, QuoteNotFoundException):
            raise
        except Exception as e:
            # Item updates already executed are discarded with the quote row update
            await self.session.rollback()
            if not isinstance(e, QuoteItemNotFoundException):
                logger.error(f"Unexpected error saving pricing for quote {quote_id}: {e}", exc_info=True)
            raise
        logger.info(f"Pricing saved for quote ID {quote_id} ({len(items)} items).")
        return await self.get_by_id(quote_id)

    async def convert(
        self,
        quote_id: int,
        expected_version: int,
        place_order: Callable[[], Awaitable[Order]],
        converted_at: datetime,
        audit: Dict[str, Any],
    ) -> Tuple[Quote, Order]:
        try:
            # The claim runs first so a losing writer never reaches the order insert
            await self._guarded_update(
                quote_id, expected_version, {"status": QuoteStatus.CONVERTED, "converted_at": converted_at}
            )
            order = await place_order()
            stmt = (
                sqlalchemy_update(QuoteDB)
                .where(QuoteDB.id == quote_id)
                .values(converted_order_id=order.id)
                .execution_options(synchronize_session=False)
            )
            await self.session.execute(stmt)
            self.session.add(self._audit_row(quote_id, {**audit, "notes": f"Order {order.order_number}"}))
            await self.session.commit()
        except (ConcurrencyConflictError, QuoteNotFoundException):
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Conversion of quote {quote_id} rolled back: {e}", exc_info=True)
            raise
        logger.info(f"Quote ID {quote_id} converted to order {order.order_number}.")
        return await self.get_by_id(quote_id), order

    async def add_message(self, quote_id: int, message_data: Dict[str, Any], audit: Dict[str, Any]) -> QuoteMessage:
        message_db = QuoteMessageDB(quote_id=quote_id, **_plain(message_data))
        self.session.add(message_db)
        self.session.add(self._audit_row(quote_id, audit))
        try:
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Unexpected error adding message to quote {quote_id}: {e}", exc_info=True)
            raise
        await self.session.refresh(message_db)
        return QuoteMessage.model_validate(message_db)

    async def add_audit_entry(self, quote_id: int, audit: Dict[str, Any]) -> QuoteAuditEntry:
        audit_db = self._audit_row(quote_id, audit)
        self.session.add(audit_db)
        try:
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Unexpected error writing audit entry for quote {quote_id}: {e}", exc_info=True)
            raise
        await self.session.refresh(audit_db)
        return QuoteAuditEntry.model_validate(audit_db)

    async def list_audit_entries(self, quote_id: int) -> List[QuoteAuditEntry]:
        stmt = (
            select(QuoteAuditDB)
            .where(QuoteAuditDB.quote_id == quote_id)
            .order_by(QuoteAuditDB.created_at.desc(), QuoteAuditDB.id.desc())
        )
        result = await self.session.execute(stmt)
        return [QuoteAuditEntry.model_validate(row) for row in result.scalars().all()]

    async def list_expired_unnotified(self, now: datetime) -> List[Quote]:
        already_notified = exists().where(
            and_(
                QuoteAuditDB.quote_id == QuoteDB.id,
                QuoteAuditDB.action_type == QuoteAction.EXPIRED_NOTIFIED.value,
            )
        )
        stmt = (
            self._base_query()
            .where(
                QuoteDB.status == QuoteStatus.APPROVED.value,
                QuoteDB.valid_until.is_not(None),
                QuoteDB.valid_until < now,
                ~already_notified,
            )
            .order_by(QuoteDB.valid_until)
        )
        result = await self.session.execute(stmt)
        return [Quote.model_validate(q_db) for q_db in result.scalars().all()]
