"""
Builders for the domain events that notify a user.

Each returns a validated NotificationEvent, or None when nobody needs to be
told (e.g. an owner commenting on their own item).
"""

from app.models.domain.notification_domain import NotificationEvent, NotificationKind

STATUS_MESSAGES = {
    "found": "has been marked as found.",
    "returned": "has been marked as returned.",
    "resolved": "has been resolved.",
    "active": "is active again.",
}


def item_link(item_id: str) -> str:
    return f"/items/{item_id}"


def comment_posted(
    item_id: str, item_owner_id: str | None, commenter_id: str, content: str
) -> NotificationEvent | None:
    """Tell the item owner someone commented, unless the owner wrote it."""
    if not item_owner_id or item_owner_id == commenter_id:
        return None

    return NotificationEvent(
        target_user_id=item_owner_id,
        kind=NotificationKind.COMMENT,
        title="New Comment",
        message="Someone commented on your item.",
        link=item_link(item_id),
        metadata={"item_id": item_id, "comment_content": content.strip()},
    )


def claim_submitted(
    item_id: str, item_title: str, owner_id: str, claim_id: str | None = None
) -> NotificationEvent:
    metadata = {"item_id": item_id}
    if claim_id:
        metadata["claim_id"] = claim_id

    return NotificationEvent(
        target_user_id=owner_id,
        kind=NotificationKind.CLAIM,
        title="New Claim",
        message=f'Someone has claimed your item "{item_title}".',
        link=item_link(item_id),
        metadata=metadata,
    )


def item_status_changed(
    item_id: str, item_title: str, owner_id: str, status: str
) -> NotificationEvent:
    suffix = STATUS_MESSAGES.get(status, f"is now {status}.")
    return NotificationEvent(
        target_user_id=owner_id,
        kind=NotificationKind.STATUS_CHANGE,
        title="Item Status Updated",
        message=f'Your item "{item_title}" {suffix}',
        link=item_link(item_id),
        metadata={"item_id": item_id, "status": status},
    )


def system_message(
    user_id: str, title: str, message: str, link: str | None = None
) -> NotificationEvent:
    return NotificationEvent(
        target_user_id=user_id,
        kind=NotificationKind.SYSTEM,
        title=title,
        message=message,
        link=link,
    )
