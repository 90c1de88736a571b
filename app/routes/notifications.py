"""
notifications.py
----------------
Purpose:
    Notification inbox for the signed-in user, plus a fire-and-forget
    dispatch endpoint for surrounding features (claims, comments, status
    changes) that want to notify another user.

Usage:
    1. GET  /notifications            - latest notifications + unread count
    2. POST /notifications/{id}/read  - mark one read
    3. POST /notifications/read-all   - mark everything read
    4. POST /notifications/dispatch   - queue a notification, 202 immediately
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError

from app.auth.verify import current_user
from app.db.helpers import DatabaseError
from app.infrastructure.observability.logging import get_logger
from app.models.api.notification_request import DispatchNotificationRequest
from app.models.api.notification_response import (
    DispatchAcceptedResponse,
    MarkAllReadResponse,
    MarkReadResponse,
    NotificationInboxResponse,
)
from app.models.domain.auth_domain import AuthContext
from app.services.notification_service import (
    get_inbox,
    mark_all_notifications_read,
    mark_notification_read,
)
from app.services.notifications.dispatcher import (
    NotificationDispatcher,
    get_notification_dispatcher,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = get_logger(__name__)


@router.get("", response_model=NotificationInboxResponse)
async def list_notifications(
    limit: int | None = Query(None, ge=1, le=100),
    user: AuthContext = Depends(current_user),
):
    try:
        notifications, unread_count = await get_inbox(user.user_id, limit=limit)
    except DatabaseError as e:
        logger.error("Failed to load notifications", user_id=user.user_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load notifications",
        ) from e

    return NotificationInboxResponse(notifications=notifications, unread_count=unread_count)


@router.post("/read-all", response_model=MarkAllReadResponse)
async def read_all(user: AuthContext = Depends(current_user)):
    try:
        updated = await mark_all_notifications_read(user.user_id)
    except DatabaseError as e:
        logger.error("Failed to mark all notifications read", user_id=user.user_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update notifications",
        ) from e

    return MarkAllReadResponse(success=True, updated=updated)


@router.post("/{notification_id}/read", response_model=MarkReadResponse)
async def read_one(notification_id: str, user: AuthContext = Depends(current_user)):
    try:
        found = await mark_notification_read(user.user_id, notification_id)
    except DatabaseError as e:
        if e.is_invalid_input:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found"
            ) from e
        logger.error(
            "Failed to mark notification read",
            user_id=user.user_id,
            notification_id=notification_id,
            error=str(e),
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update notification",
        ) from e

    if not found:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")

    return MarkReadResponse(success=True, notification_id=notification_id)


@router.post(
    "/dispatch",
    response_model=DispatchAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def dispatch_notification(
    body: DispatchNotificationRequest,
    user: AuthContext = Depends(current_user),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """
    Queue a notification for another user.

    The response never reflects delivery: the triggering action has already
    succeeded and a lost notification is acceptable.
    """
    try:
        event = body.to_event()
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=e.errors(include_url=False, include_context=False),
        ) from e

    dispatcher.dispatch_in_background(event, access_token=user.access_token)
    logger.debug(
        "Notification queued",
        sender_id=user.user_id,
        user_id=event.target_user_id,
        notification_type=event.kind.value,
    )
    return DispatchAcceptedResponse()
