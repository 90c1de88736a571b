from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import psycopg.errors
import pytest
from fastapi.testclient import TestClient

from app.db.helpers import DatabaseError
from app.main import app
from app.models.domain.notification_domain import NotificationKind, NotificationRecord
from app.services.notifications.dispatcher import get_notification_dispatcher

client = TestClient(app)


def _record(notification_id: str, is_read: bool = False) -> NotificationRecord:
    return NotificationRecord(
        id=notification_id,
        user_id="user-123",
        type=NotificationKind.COMMENT,
        title="New Comment",
        message="Someone commented on your item.",
        link="/items/item-1",
        is_read=is_read,
        created_at=datetime.now(UTC),
    )


@pytest.fixture
def fake_dispatcher():
    dispatcher = MagicMock()
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    yield dispatcher
    app.dependency_overrides.pop(get_notification_dispatcher, None)


def test_inbox_requires_auth():
    response = client.get("/notifications")

    assert response.status_code in (401, 403)


def test_inbox_lists_latest_for_current_user(apply_auth_override, monkeypatch):
    apply_auth_override(app)
    list_mock = AsyncMock(return_value=[_record("n-2"), _record("n-1", is_read=True)])
    count_mock = AsyncMock(return_value=1)
    monkeypatch.setattr(
        "app.services.notification_service.NotificationRepository.list_for_user", list_mock
    )
    monkeypatch.setattr(
        "app.services.notification_service.NotificationRepository.count_unread", count_mock
    )

    response = client.get("/notifications")

    assert response.status_code == 200
    data = response.json()
    assert [n["id"] for n in data["notifications"]] == ["n-2", "n-1"]
    assert data["unread_count"] == 1
    list_mock.assert_awaited_once_with("user-123", limit=20)
    count_mock.assert_awaited_once_with("user-123")


def test_mark_one_read(apply_auth_override, monkeypatch):
    apply_auth_override(app)
    mark_mock = AsyncMock(return_value=True)
    monkeypatch.setattr(
        "app.services.notification_service.NotificationRepository.mark_read", mark_mock
    )

    response = client.post("/notifications/n-1/read")

    assert response.status_code == 200
    assert response.json() == {"success": True, "notification_id": "n-1"}
    mark_mock.assert_awaited_once_with("n-1", "user-123")


def test_mark_someone_elses_notification_is_404(apply_auth_override, monkeypatch):
    apply_auth_override(app)
    monkeypatch.setattr(
        "app.services.notification_service.NotificationRepository.mark_read",
        AsyncMock(return_value=False),
    )

    response = client.post("/notifications/not-mine/read")

    assert response.status_code == 404


def test_mark_read_with_malformed_id_is_404(apply_auth_override, monkeypatch):
    apply_auth_override(app)
    error = DatabaseError('invalid input syntax for type uuid: "abc"', operation="fetch_one")
    error.__cause__ = psycopg.errors.InvalidTextRepresentation("invalid input syntax")
    monkeypatch.setattr(
        "app.services.notification_service.NotificationRepository.mark_read",
        AsyncMock(side_effect=error),
    )

    response = client.post("/notifications/abc/read")

    assert response.status_code == 404
    assert response.json() == {"detail": "Notification not found"}


def test_mark_read_database_outage_is_500(apply_auth_override, monkeypatch):
    apply_auth_override(app)
    monkeypatch.setattr(
        "app.services.notification_service.NotificationRepository.mark_read",
        AsyncMock(side_effect=DatabaseError("server closed the connection")),
    )

    response = client.post("/notifications/n-1/read")

    assert response.status_code == 500


def test_mark_all_read(apply_auth_override, monkeypatch):
    apply_auth_override(app)
    monkeypatch.setattr(
        "app.services.notification_service.NotificationRepository.mark_all_read",
        AsyncMock(return_value=4),
    )

    response = client.post("/notifications/read-all")

    assert response.status_code == 200
    assert response.json() == {"success": True, "updated": 4}


def test_dispatch_is_accepted_without_waiting(apply_auth_override, fake_dispatcher):
    apply_auth_override(app)

    response = client.post(
        "/notifications/dispatch",
        json={
            "user_id": "owner-1",
            "type": "status_change",
            "title": "Item Status Updated",
            "message": "Your item has been marked as found.",
            "metadata": {"item_id": "item-1", "status": "found"},
        },
    )

    assert response.status_code == 202
    assert response.json() == {"accepted": True}

    fake_dispatcher.dispatch_in_background.assert_called_once()
    event = fake_dispatcher.dispatch_in_background.call_args.args[0]
    assert event.target_user_id == "owner-1"
    assert event.kind == NotificationKind.STATUS_CHANGE
    assert fake_dispatcher.dispatch_in_background.call_args.kwargs["access_token"] == "user-token"


def test_dispatch_with_bad_metadata_is_422(apply_auth_override, fake_dispatcher):
    apply_auth_override(app)

    response = client.post(
        "/notifications/dispatch",
        json={
            "user_id": "owner-1",
            "type": "comment",
            "title": "New Comment",
            "message": "Someone commented on your item.",
            "metadata": {"comment_content": "no item id"},
        },
    )

    assert response.status_code == 422
    fake_dispatcher.dispatch_in_background.assert_not_called()


def test_api_errors_keep_default_shape():
    response = client.get("/notifications")

    assert "detail" in response.json()
    assert "access-control-allow-origin" not in response.headers
