import logging
from pathlib import Path
from typing import Any, Dict, Optional

import jinja2
from fastapi.encoders import jsonable_encoder

from cedar.core.utils import utcnow

from ..config import settings
from ..domain.entities import NotificationKind, OutboxEntry, RetryReport
from ..domain.exceptions import EmailDomainException, EmailTemplateException
from ..domain.repositories import AbstractNotificationOutboxRepository
from ..domain.sender import AbstractEmailSender

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

env = jinja2.Environment(
    loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=jinja2.select_autoescape(["html", "xml"]),
    undefined=jinja2.StrictUndefined,
)

SUBJECTS: Dict[NotificationKind, str] = {
    NotificationKind.QUOTE_APPROVED: "Your quote {quote_number} has been approved",
    NotificationKind.QUOTE_REJECTED: "Update on your quote {quote_number}",
    NotificationKind.QUOTE_EXPIRED: "Your quote {quote_number} has expired",
    NotificationKind.ORDER_CONFIRMATION: "Order {order_number} confirmed",
}


class NotificationService:
    """Queues transactional emails in the outbox and dispatches them.

    Notifications are fire-and-forget for the callers: `notify` never raises,
    a failed send stays in the outbox and is picked up by `retry_failed`.
    """

    def __init__(self, outbox_repo: AbstractNotificationOutboxRepository, email_sender: AbstractEmailSender):
        self.outbox_repo = outbox_repo
        self.email_sender = email_sender

    def _render(self, kind: NotificationKind, payload: Dict[str, Any]) -> str:
        template_name = f"{kind.value}.html"
        try:
            template = env.get_template(template_name)
            return template.render(storefront_url=settings.STOREFRONT_URL, **payload)
        except jinja2.TemplateError as e:
            logger.error(f"[NotificationService] Cannot render {template_name}: {e}", exc_info=True)
            raise EmailTemplateException(f"Template {template_name} could not be rendered: {e}")

    def _subject(self, kind: NotificationKind, payload: Dict[str, Any]) -> str:
        try:
            return SUBJECTS[kind].format(**payload)
        except KeyError as e:
            raise EmailTemplateException(f"Missing subject field {e} for {kind.value}")

    async def notify(self, recipient: Optional[str], kind: NotificationKind, payload: Dict[str, Any]) -> bool:
        """Queues then immediately dispatches one notification. Returns whether it was sent."""
        if not recipient:
            logger.warning(f"[NotificationService] No recipient for {kind.value}; notification skipped.")
            return False
        try:
            entry = await self.outbox_repo.add(recipient, kind, jsonable_encoder(payload))
        except Exception as e:
            logger.error(f"[NotificationService] Could not queue {kind.value} for {recipient}: {e}", exc_info=True)
            return False
        return await self.dispatch(entry)

    async def dispatch(self, entry: OutboxEntry) -> bool:
        try:
            subject = self._subject(entry.template_kind, entry.payload)
            html_content = self._render(entry.template_kind, entry.payload)
            sent = await self.email_sender.send_email(
                recipient_email=entry.recipient,
                subject=subject,
                html_content=html_content,
            )
            error = None if sent else "Sender returned False"
        except EmailDomainException as e:
            sent = False
            error = str(e)
        except Exception as e:
            logger.error(f"[NotificationService] Unexpected error sending outbox entry {entry.id}: {e}", exc_info=True)
            sent = False
            error = f"{type(e).__name__}: {e}"

        try:
            if sent:
                await self.outbox_repo.mark_sent(entry.id, utcnow())
                logger.info(f"[NotificationService] {entry.template_kind.value} #{entry.id} sent to {entry.recipient}.")
            else:
                await self.outbox_repo.mark_failed(entry.id, error)
                logger.warning(f"[NotificationService] {entry.template_kind.value} #{entry.id} failed: {error}")
        except Exception as e:
            logger.error(f"[NotificationService] Could not record outcome of outbox entry {entry.id}: {e}", exc_info=True)
        return sent

    async def retry_failed(self, limit: Optional[int] = None) -> RetryReport:
        """Re-dispatches failed outbox entries that still have attempts left."""
        entries = await self.outbox_repo.list_failed(settings.MAX_ATTEMPTS, limit or settings.RETRY_BATCH_SIZE)
        report = RetryReport(attempted=len(entries))
        for entry in entries:
            if await self.dispatch(entry):
                report.sent += 1
            else:
                report.failed += 1
        logger.info(f"[NotificationService] Retry run: {report.sent}/{report.attempted} sent.")
        return report
