from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from cedar.core.utils import utcnow


class NotificationOutboxDB(SQLModel, table=True):
    __tablename__ = "notification_outbox"

    id: Optional[int] = Field(default=None, primary_key=True)
    recipient: str = Field(max_length=255)
    template_kind: str = Field(max_length=50, index=True)
    payload: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    status: str = Field(default="pending", max_length=20, index=True)
    attempts: int = Field(default=0)
    last_error: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    sent_at: Optional[datetime] = None
