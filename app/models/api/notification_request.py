# app/models/api/notification_request.py
from typing import Any

from pydantic import BaseModel, Field

from app.models.domain.notification_domain import NotificationEvent, NotificationKind


class DispatchNotificationRequest(BaseModel):
    """Request body for POST /notifications/dispatch."""

    user_id: str = Field(..., min_length=1, description="Recipient of the notification")
    type: NotificationKind
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    link: str | None = Field(None, max_length=500)
    metadata: dict[str, Any] | None = None

    def to_event(self) -> NotificationEvent:
        return NotificationEvent(
            target_user_id=self.user_id,
            kind=self.type,
            title=self.title,
            message=self.message,
            link=self.link,
            metadata=self.metadata,
        )
