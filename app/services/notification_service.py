"""
Notification service.

Server side of the send-notification function (validate the payload, store
one row) and the inbox operations used by the notification bell: latest
notifications, unread count, mark read.

Architecture:
    - Route layer: HTTP concerns (status codes, CORS headers, auth)
    - Service layer: validation and domain models (this module)
    - Repository layer: SQL
"""

from typing import Any

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.notification_domain import NotificationKind, NotificationRecord
from app.repositories.notification_repository import NotificationRepository

logger = get_logger(__name__)

REQUIRED_FIELDS = ("user_id", "title", "message")


class NotificationRequestError(Exception):
    """Payload rejected before anything was stored."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def validate_payload(payload: Any) -> dict[str, Any]:
    """
    Check a send-notification payload.

    Returns:
        Normalized dict with user_id, kind, title, message, link, metadata

    Raises:
        NotificationRequestError: missing required fields or unknown type
    """
    if not isinstance(payload, dict):
        raise NotificationRequestError("Invalid JSON body")

    missing = [
        field
        for field in REQUIRED_FIELDS
        if not isinstance(payload.get(field), str) or not payload[field].strip()
    ]
    if missing:
        logger.info("send-notification rejected", missing_fields=missing)
        raise NotificationRequestError("Missing required fields")

    try:
        kind = NotificationKind(payload.get("type"))
    except ValueError as e:
        raise NotificationRequestError("Invalid notification type") from e

    metadata = payload.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        raise NotificationRequestError("Invalid metadata")

    link = payload.get("link")
    if link is not None and not isinstance(link, str):
        raise NotificationRequestError("Invalid link")

    return {
        "user_id": payload["user_id"],
        "kind": kind,
        "title": payload["title"],
        "message": payload["message"],
        "link": link,
        "metadata": metadata,
    }


async def store_notification(payload: Any) -> NotificationRecord:
    """
    Validate and persist one notification.

    Raises:
        NotificationRequestError: payload rejected (400)
        DatabaseError: insert failed (500)
    """
    fields = validate_payload(payload)
    return await NotificationRepository.insert(**fields)


async def get_inbox(user_id: str, limit: int | None = None) -> tuple[list[NotificationRecord], int]:
    """Latest notifications for the user plus their total unread count."""
    limit = limit or settings.NOTIFICATION_INBOX_LIMIT
    notifications = await NotificationRepository.list_for_user(user_id, limit=limit)
    unread_count = await NotificationRepository.count_unread(user_id)
    return notifications, unread_count


async def mark_notification_read(user_id: str, notification_id: str) -> bool:
    return await NotificationRepository.mark_read(notification_id, user_id)


async def mark_all_notifications_read(user_id: str) -> int:
    return await NotificationRepository.mark_all_read(user_id)
