from cedar.core.utils import utcnow
from cedar.quotes.domain.entities import QuoteMessage, SenderType
from cedar.quotes.domain.messages import customer_visible_messages


def message(message_id: int, is_internal: bool) -> QuoteMessage:
    return QuoteMessage(
        id=message_id,
        quote_id=1,
        sender_type=SenderType.ADMIN,
        sender_name="Cedar Team",
        message=f"message {message_id}",
        is_internal=is_internal,
        created_at=utcnow(),
    )


def test_internal_messages_are_dropped_in_order():
    messages = [message(1, False), message(2, True), message(3, False)]

    visible = customer_visible_messages(messages)

    assert [m.id for m in visible] == [1, 3]


def test_only_internal_messages_leave_nothing():
    assert customer_visible_messages([message(1, True)]) == []
