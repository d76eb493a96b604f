from unittest.mock import AsyncMock

import pytest

from cedar.core.utils import utcnow
from cedar.notifications.application.services import NotificationService
from cedar.notifications.domain.entities import NotificationKind, OutboxEntry, OutboxStatus
from cedar.notifications.domain.exceptions import EmailSendingException

pytestmark = pytest.mark.asyncio


def rejected_payload(**extra):
    return {
        "quote_number": "QT-20260301-ABC123",
        "customer_name": "Meera Shah",
        "reason": "Out of stock",
        "messages": [{"sender_name": "Cedar Team", "message": "Sorry about this one"}],
        **extra,
    }


def outbox_entry(entry_id: int = 1, kind: NotificationKind = NotificationKind.QUOTE_REJECTED, payload=None) -> OutboxEntry:
    return OutboxEntry(
        id=entry_id,
        recipient="buyer@liftsystems.in",
        template_kind=kind,
        payload=payload if payload is not None else rejected_payload(),
        status=OutboxStatus.PENDING,
        created_at=utcnow(),
    )


@pytest.fixture
def outbox_repo():
    repo = AsyncMock()
    repo.add.side_effect = lambda recipient, kind, payload: outbox_entry(kind=kind, payload=payload)
    return repo


@pytest.fixture
def sender():
    sender = AsyncMock()
    sender.send_email.return_value = True
    return sender


@pytest.fixture
def service(outbox_repo, sender) -> NotificationService:
    return NotificationService(outbox_repo=outbox_repo, email_sender=sender)


async def test_notify_renders_and_marks_sent(service, outbox_repo, sender):
    sent = await service.notify("buyer@liftsystems.in", NotificationKind.QUOTE_REJECTED, rejected_payload())

    assert sent is True
    kwargs = sender.send_email.call_args.kwargs
    assert kwargs["recipient_email"] == "buyer@liftsystems.in"
    assert kwargs["subject"] == "Update on your quote QT-20260301-ABC123"
    assert "Out of stock" in kwargs["html_content"]
    assert "Meera Shah" in kwargs["html_content"]
    outbox_repo.mark_sent.assert_awaited_once()
    outbox_repo.mark_failed.assert_not_called()


async def test_notify_without_recipient_is_skipped(service, outbox_repo, sender):
    assert await service.notify(None, NotificationKind.QUOTE_REJECTED, rejected_payload()) is False
    outbox_repo.add.assert_not_called()
    sender.send_email.assert_not_called()


async def test_provider_error_leaves_entry_failed(service, outbox_repo, sender):
    sender.send_email.side_effect = EmailSendingException("Resend answered 500")

    sent = await service.notify("buyer@liftsystems.in", NotificationKind.QUOTE_REJECTED, rejected_payload())

    assert sent is False
    entry_id, error = outbox_repo.mark_failed.call_args.args
    assert entry_id == 1
    assert "Resend answered 500" in error


async def test_missing_template_field_fails_without_raising(service, outbox_repo, sender):
    payload = rejected_payload()
    del payload["reason"]

    sent = await service.notify("buyer@liftsystems.in", NotificationKind.QUOTE_REJECTED, payload)

    assert sent is False
    sender.send_email.assert_not_called()
    outbox_repo.mark_failed.assert_awaited_once()


async def test_outbox_failure_does_not_raise(service, outbox_repo, sender):
    outbox_repo.add.side_effect = RuntimeError("database is down")

    assert await service.notify("buyer@liftsystems.in", NotificationKind.QUOTE_REJECTED, rejected_payload()) is False
    sender.send_email.assert_not_called()


async def test_retry_failed_counts_outcomes(service, outbox_repo, sender):
    outbox_repo.list_failed.return_value = [outbox_entry(1), outbox_entry(2)]
    sender.send_email.side_effect = [True, False]

    report = await service.retry_failed()

    assert (report.attempted, report.sent, report.failed) == (2, 1, 1)
    outbox_repo.list_failed.assert_awaited_once_with(5, 50)
    outbox_repo.mark_sent.assert_awaited_once()
    assert outbox_repo.mark_failed.call_args.args == (2, "Sender returned False")


async def test_unexpected_sender_error_is_recorded(service, outbox_repo, sender):
    sender.send_email.side_effect = RuntimeError("connection reset")

    sent = await service.notify("buyer@liftsystems.in", NotificationKind.QUOTE_REJECTED, rejected_payload())

    assert sent is False
    entry_id, error = outbox_repo.mark_failed.call_args.args
    assert entry_id == 1
    assert error == "RuntimeError: connection reset"
