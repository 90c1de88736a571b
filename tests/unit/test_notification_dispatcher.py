import asyncio
import json

import httpx
import pytest
import pytest_asyncio

from app.models.domain.notification_domain import (
    DispatchErrorKind,
    NotificationEvent,
    NotificationKind,
)
from app.services.notifications.dispatcher import NotificationDispatcher

FUNCTION_URL = "https://test-project.supabase.co/functions/v1/send-notification"


def _event(user_id: str = "owner-1", **overrides) -> NotificationEvent:
    data = {
        "target_user_id": user_id,
        "kind": NotificationKind.COMMENT,
        "title": "New Comment",
        "message": "Someone commented on your item.",
        "link": "/items/item-1",
        "metadata": {"item_id": "item-1"},
    }
    data.update(overrides)
    return NotificationEvent(**data)


def _record_for(payload: dict, notification_id: str = "notif-1") -> dict:
    return {
        "id": notification_id,
        "user_id": payload["user_id"],
        "type": payload["type"],
        "title": payload["title"],
        "message": payload["message"],
        "link": payload.get("link"),
        "metadata": payload.get("metadata"),
        "is_read": False,
        "created_at": "2026-10-19T09:30:00+00:00",
    }


def _echo_record(request: httpx.Request) -> httpx.Response:
    payload = json.loads(request.content)
    return httpx.Response(200, json=_record_for(payload, f"notif-{payload['user_id']}"))


@pytest_asyncio.fixture
async def dispatcher():
    service = NotificationDispatcher(function_url=FUNCTION_URL, service_key="service-key")
    yield service
    await service.close()


@pytest.mark.asyncio
async def test_dispatch_success_returns_record(httpx_mock, dispatcher):
    event = _event()
    httpx_mock.add_response(method="POST", url=FUNCTION_URL, json=_record_for(event.to_payload()))

    outcome = await dispatcher.dispatch(event)

    assert outcome.ok is True
    assert outcome.error is None
    assert outcome.result.user_id == "owner-1"
    assert outcome.result.type == NotificationKind.COMMENT

    requests = httpx_mock.get_requests()
    assert len(requests) == 1
    assert json.loads(requests[0].content) == event.to_payload()


@pytest.mark.asyncio
async def test_dispatch_uses_service_key_unless_token_given(httpx_mock, dispatcher):
    httpx_mock.add_callback(_echo_record, method="POST", url=FUNCTION_URL)
    httpx_mock.add_callback(_echo_record, method="POST", url=FUNCTION_URL)

    await dispatcher.dispatch(_event())
    await dispatcher.dispatch(_event(), access_token="user-access-token")

    first, second = httpx_mock.get_requests()
    assert first.headers["Authorization"] == "Bearer service-key"
    assert first.headers["apikey"] == "test-anon-key"
    assert second.headers["Authorization"] == "Bearer user-access-token"


@pytest.mark.asyncio
async def test_dispatch_missing_title_is_absorbed(httpx_mock, dispatcher):
    raw_event = {
        "target_user_id": "owner-1",
        "kind": "comment",
        "message": "Someone commented on your item.",
        "metadata": {"item_id": "item-1"},
    }

    outcome = await dispatcher.dispatch(raw_event)

    assert outcome.ok is False
    assert outcome.result is None
    assert outcome.error.kind == DispatchErrorKind.VALIDATION
    assert httpx_mock.get_requests() == []


@pytest.mark.asyncio
async def test_dispatch_accepts_valid_mapping(httpx_mock, dispatcher):
    httpx_mock.add_callback(_echo_record, method="POST", url=FUNCTION_URL)

    outcome = await dispatcher.dispatch(
        {"target_user_id": "user-9", "kind": "system", "title": "Hi", "message": "Welcome"}
    )

    assert outcome.ok is True
    assert outcome.result.id == "notif-user-9"


@pytest.mark.asyncio
async def test_dispatch_remote_validation_error(httpx_mock, dispatcher):
    httpx_mock.add_response(
        method="POST",
        url=FUNCTION_URL,
        status_code=400,
        json={"error": "Missing required fields"},
    )

    outcome = await dispatcher.dispatch(_event())

    assert outcome.ok is False
    assert outcome.error.kind == DispatchErrorKind.REMOTE
    assert outcome.error.status_code == 400
    assert outcome.error.message == "Missing required fields"


@pytest.mark.asyncio
async def test_dispatch_remote_server_error(httpx_mock, dispatcher):
    httpx_mock.add_response(method="POST", url=FUNCTION_URL, status_code=500, text="boom")

    outcome = await dispatcher.dispatch(_event())

    assert outcome.error.kind == DispatchErrorKind.REMOTE
    assert outcome.error.status_code == 500


@pytest.mark.asyncio
async def test_dispatch_unreadable_record(httpx_mock, dispatcher):
    httpx_mock.add_response(method="POST", url=FUNCTION_URL, json={"unexpected": True})

    outcome = await dispatcher.dispatch(_event())

    assert outcome.ok is False
    assert outcome.error.kind == DispatchErrorKind.REMOTE


@pytest.mark.asyncio
async def test_dispatch_rejects_record_for_other_user(httpx_mock, dispatcher):
    event = _event("owner-1")
    payload = event.to_payload() | {"user_id": "someone-else"}
    httpx_mock.add_response(method="POST", url=FUNCTION_URL, json=_record_for(payload))

    outcome = await dispatcher.dispatch(event)

    assert outcome.ok is False
    assert "different user" in outcome.error.message


@pytest.mark.asyncio
async def test_dispatch_unserializable_metadata(httpx_mock, dispatcher):
    event = _event(kind=NotificationKind.SYSTEM, metadata={"when": object()})

    outcome = await dispatcher.dispatch(event)

    assert outcome.error.kind == DispatchErrorKind.INTERNAL
    assert httpx_mock.get_requests() == []


@pytest.mark.asyncio
async def test_outage_returns_errors_and_never_raises(httpx_mock, dispatcher):
    for _ in range(3):
        httpx_mock.add_exception(httpx.ConnectError("connection refused"), url=FUNCTION_URL)

    outcomes = [await dispatcher.dispatch(_event(f"user-{i}")) for i in range(3)]

    assert all(not outcome.ok for outcome in outcomes)
    assert {outcome.error.kind for outcome in outcomes} == {DispatchErrorKind.TRANSPORT}


@pytest.mark.asyncio
async def test_timeout_is_a_transport_error(httpx_mock, dispatcher):
    httpx_mock.add_exception(httpx.ReadTimeout("too slow"), url=FUNCTION_URL)

    outcome = await dispatcher.dispatch(_event())

    assert outcome.error.kind == DispatchErrorKind.TRANSPORT


@pytest.mark.asyncio
async def test_concurrent_dispatch_keeps_recipients_apart(httpx_mock, dispatcher):
    httpx_mock.add_callback(_echo_record, method="POST", url=FUNCTION_URL)
    httpx_mock.add_callback(_echo_record, method="POST", url=FUNCTION_URL)

    alice, bob = await asyncio.gather(
        dispatcher.dispatch(_event("alice")),
        dispatcher.dispatch(_event("bob")),
    )

    assert alice.ok and bob.ok
    assert alice.result.user_id == "alice"
    assert alice.result.id == "notif-alice"
    assert bob.result.user_id == "bob"
    assert bob.result.id == "notif-bob"

    sent_to = sorted(json.loads(request.content)["user_id"] for request in httpx_mock.get_requests())
    assert sent_to == ["alice", "bob"]


@pytest.mark.asyncio
async def test_background_dispatch_does_not_block_caller(httpx_mock, dispatcher):
    httpx_mock.add_callback(_echo_record, method="POST", url=FUNCTION_URL)

    task = dispatcher.dispatch_in_background(_event("owner-1"))
    assert dispatcher.pending_count == 1

    await dispatcher.drain()

    assert task.done()
    assert task.result().ok is True
    assert dispatcher.pending_count == 0


@pytest.mark.asyncio
async def test_background_dispatch_failure_stays_in_task(httpx_mock, dispatcher):
    httpx_mock.add_exception(httpx.ConnectError("down"), url=FUNCTION_URL)

    task = dispatcher.dispatch_in_background(_event())
    await dispatcher.drain()

    assert task.exception() is None
    assert task.result().error.kind == DispatchErrorKind.TRANSPORT


@pytest.mark.asyncio
async def test_drain_waits_for_dispatches_scheduled_while_draining(
    httpx_mock, dispatcher, monkeypatch
):
    httpx_mock.add_callback(_echo_record, method="POST", url=FUNCTION_URL)
    httpx_mock.add_callback(_echo_record, method="POST", url=FUNCTION_URL)
    send = dispatcher.dispatch
    follow_ups = []

    async def dispatch_then_follow_up(event, access_token=None):
        outcome = await send(event, access_token=access_token)
        if not follow_ups:
            follow_ups.append(dispatcher.dispatch_in_background(_event("owner-2")))
        return outcome

    monkeypatch.setattr(dispatcher, "dispatch", dispatch_then_follow_up)

    first = dispatcher.dispatch_in_background(_event("owner-1"))
    await dispatcher.drain()

    assert first.done()
    assert len(follow_ups) == 1
    assert follow_ups[0].done()
    assert follow_ups[0].result().result.user_id == "owner-2"
    assert dispatcher.pending_count == 0
