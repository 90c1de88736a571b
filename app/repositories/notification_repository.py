"""
Persistence for the notifications table.

Used by the send-notification function (insert) and the inbox endpoints
(list, unread count, mark read).
"""

from typing import Any

from psycopg.types.json import Jsonb

from app.db.helpers import DatabaseError, execute_query, fetch_all, fetch_one, with_db_retry
from app.infrastructure.observability.logging import get_logger
from app.models.domain.notification_domain import NotificationKind, NotificationRecord

logger = get_logger(__name__)


class NotificationRepositoryError(DatabaseError):
    """More specific exception for notification persistence failures."""


class NotificationRepository:
    """Queries against public.notifications."""

    SELECT_COLUMNS = """
        id, user_id, type, title, message, link, metadata, is_read, created_at
    """

    @classmethod
    def _row_to_record(cls, row: dict) -> NotificationRecord:
        return NotificationRecord(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            type=row["type"],
            title=row["title"],
            message=row["message"],
            link=row.get("link"),
            metadata=row.get("metadata"),
            is_read=bool(row.get("is_read", False)),
            created_at=row.get("created_at"),
        )

    @classmethod
    async def insert(
        cls,
        user_id: str,
        kind: NotificationKind,
        title: str,
        message: str,
        link: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> NotificationRecord:
        """Insert one unread notification and return the stored row."""
        query = f"""
            INSERT INTO notifications (user_id, type, title, message, link, metadata, is_read)
            VALUES (%s, %s, %s, %s, %s, %s, false)
            RETURNING {cls.SELECT_COLUMNS}
        """

        row = await fetch_one(
            query,
            (
                user_id,
                kind.value,
                title,
                message,
                link,
                Jsonb(metadata) if metadata is not None else None,
            ),
        )
        if not row:
            raise NotificationRepositoryError("Notification insert returned no row", operation="insert")

        record = cls._row_to_record(row)
        logger.info(
            "Notification stored",
            notification_id=record.id,
            user_id=user_id,
            notification_type=kind.value,
        )
        return record

    @classmethod
    @with_db_retry(max_retries=2, base_delay=0.1)
    async def list_for_user(cls, user_id: str, limit: int = 20) -> list[NotificationRecord]:
        """Latest notifications for a user, newest first."""
        query = f"""
            SELECT {cls.SELECT_COLUMNS}
            FROM notifications
            WHERE user_id = %s
            ORDER BY created_at DESC
            LIMIT %s
        """
        rows = await fetch_all(query, (user_id, limit))
        return [cls._row_to_record(row) for row in rows]

    @classmethod
    @with_db_retry(max_retries=2, base_delay=0.1)
    async def count_unread(cls, user_id: str) -> int:
        query = """
            SELECT COUNT(*) AS unread
            FROM notifications
            WHERE user_id = %s AND is_read = false
        """
        row = await fetch_one(query, (user_id,))
        return int(row["unread"]) if row else 0

    @classmethod
    @with_db_retry(max_retries=2, base_delay=0.1)
    async def mark_read(cls, notification_id: str, user_id: str) -> bool:
        """Mark one of the user's notifications read. False if no such row."""
        query = """
            UPDATE notifications
            SET is_read = true
            WHERE id = %s AND user_id = %s
        """
        updated = await execute_query(query, (notification_id, user_id))
        return updated > 0

    @classmethod
    @with_db_retry(max_retries=2, base_delay=0.1)
    async def mark_all_read(cls, user_id: str) -> int:
        query = """
            UPDATE notifications
            SET is_read = true
            WHERE user_id = %s AND is_read = false
        """
        updated = await execute_query(query, (user_id,))
        logger.info("Notifications marked read", user_id=user_id, count=updated)
        return updated
