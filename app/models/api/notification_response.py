# app/models/api/notification_response.py
from pydantic import BaseModel, Field

from app.models.domain.notification_domain import NotificationRecord


class NotificationInboxResponse(BaseModel):
    """Response for GET /notifications"""

    notifications: list[NotificationRecord] = Field(..., description="Newest first")
    unread_count: int


class MarkReadResponse(BaseModel):
    """Response for POST /notifications/{id}/read"""

    success: bool
    notification_id: str


class MarkAllReadResponse(BaseModel):
    """Response for POST /notifications/read-all"""

    success: bool
    updated: int


class DispatchAcceptedResponse(BaseModel):
    """Response for POST /notifications/dispatch"""

    accepted: bool = True
