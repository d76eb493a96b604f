from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class NotificationKind(str, Enum):
    QUOTE_APPROVED = "quote_approved"
    QUOTE_REJECTED = "quote_rejected"
    QUOTE_EXPIRED = "quote_expired"
    ORDER_CONFIRMATION = "order_confirmation"


class OutboxStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class OutboxEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    recipient: str
    template_kind: NotificationKind
    payload: Dict[str, Any]
    status: OutboxStatus
    attempts: int = 0
    last_error: Optional[str] = None
    created_at: datetime
    sent_at: Optional[datetime] = None


class RetryReport(BaseModel):
    attempted: int = 0
    sent: int = 0
    failed: int = 0
