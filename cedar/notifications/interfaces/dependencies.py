from typing import Annotated

from fastapi import Depends

from cedar.core.database import DbSessionDep

from ..application.services import NotificationService
from ..domain.repositories import AbstractNotificationOutboxRepository
from ..domain.sender import AbstractEmailSender
from ..infrastructure.persistence import SQLAlchemyNotificationOutboxRepository
from ..infrastructure.resend_sender import ResendEmailSender

# --- Email sender ---


def get_email_sender() -> AbstractEmailSender:
    """Concrete sender; configuration is read from EmailSettings."""
    return ResendEmailSender()


EmailSenderDep = Annotated[AbstractEmailSender, Depends(get_email_sender)]

# --- Outbox ---


def get_outbox_repository(session: DbSessionDep) -> AbstractNotificationOutboxRepository:
    return SQLAlchemyNotificationOutboxRepository(session)


OutboxRepositoryDep = Annotated[AbstractNotificationOutboxRepository, Depends(get_outbox_repository)]

# --- Service ---


def get_notification_service(outbox_repo: OutboxRepositoryDep, email_sender: EmailSenderDep) -> NotificationService:
    return NotificationService(outbox_repo=outbox_repo, email_sender=email_sender)


NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
