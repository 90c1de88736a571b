"""
Notification dispatcher.

Client for the send-notification Edge Function. Every dispatch is
best-effort and at-most-once: one POST, no retry, and every failure is turned
into a DispatchOutcome instead of an exception so the action that triggered
the notification (a claim, a comment, a status change) is never blocked.
"""

import asyncio
import json
import time
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import ValidationError

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.notification_domain import (
    DispatchErrorKind,
    DispatchOutcome,
    NotificationEvent,
    NotificationRecord,
)

logger = get_logger(__name__)


class NotificationDispatcher:
    """
    Submits notification events to the remote notification function.

    Holds one pooled HTTP client and the set of in-flight background
    dispatches; no other state is shared between calls.
    """

    def __init__(
        self,
        function_url: str | None = None,
        service_key: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.function_url = function_url or settings.functions_url()
        self._service_key = service_key or settings.SUPABASE_SERVICE_ROLE_KEY
        self._timeout = timeout or settings.NOTIFICATION_TIMEOUT_SECONDS
        self._client = client or self._create_client()
        self._pending: set[asyncio.Task] = set()

    def _create_client(self) -> httpx.AsyncClient:
        """Create async HTTP client for the functions endpoint."""
        timeout = httpx.Timeout(self._timeout)
        limits = httpx.Limits(max_keepalive_connections=10, max_connections=50)
        return httpx.AsyncClient(timeout=timeout, limits=limits)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def close(self) -> None:
        """Wait for in-flight dispatches, then close the HTTP client."""
        await self.drain()
        await self._client.aclose()

    async def drain(self) -> None:
        """Await background dispatches, including ones scheduled while draining."""
        while True:
            pending = [task for task in self._pending if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def dispatch_in_background(
        self,
        event: NotificationEvent | Mapping[str, Any],
        access_token: str | None = None,
    ) -> asyncio.Task:
        """
        Fire-and-forget variant of dispatch().

        Must be called from a running event loop. The returned task may be
        ignored; a reference is kept here until it finishes.
        """
        task = asyncio.create_task(self.dispatch(event, access_token=access_token))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def dispatch(
        self,
        event: NotificationEvent | Mapping[str, Any],
        access_token: str | None = None,
    ) -> DispatchOutcome:
        """
        Send one event to the notification function.

        Args:
            event: A NotificationEvent, or a raw mapping with the same fields
                which is validated here
            access_token: Caller's Supabase access token; the service role key
                is used when omitted

        Returns:
            DispatchOutcome holding the created record, or the error. Never raises.
        """
        try:
            return await self._dispatch(event, access_token)
        except Exception as e:
            logger.exception(
                "Unexpected error dispatching notification",
                error=str(e),
                error_type=type(e).__name__,
                error_kind=DispatchErrorKind.INTERNAL.value,
            )
            return DispatchOutcome.failure(DispatchErrorKind.INTERNAL, str(e))

    async def _dispatch(
        self, event: NotificationEvent | Mapping[str, Any], access_token: str | None
    ) -> DispatchOutcome:
        if not isinstance(event, NotificationEvent):
            try:
                event = NotificationEvent.model_validate(dict(event))
            except ValidationError as e:
                # Malformed events are caller bugs; still never raised
                logger.error(
                    "Rejected malformed notification event",
                    error_kind=DispatchErrorKind.VALIDATION.value,
                    errors=[err["loc"] for err in e.errors()],
                )
                return DispatchOutcome.failure(DispatchErrorKind.VALIDATION, str(e))

        log = logger.bind(user_id=event.target_user_id, notification_type=event.kind.value)

        try:
            body = json.dumps(event.to_payload())
        except (TypeError, ValueError) as e:
            log.error(
                "Failed to serialize notification payload",
                error=str(e),
                error_kind=DispatchErrorKind.INTERNAL.value,
            )
            return DispatchOutcome.failure(DispatchErrorKind.INTERNAL, f"Unserializable payload: {e}")

        start_time = time.time()
        try:
            response = await self._client.post(
                self.function_url,
                content=body,
                headers=self._get_auth_headers(access_token),
            )
        except httpx.RequestError as e:
            log.warning(
                "Notification function unreachable",
                error=str(e),
                error_type=type(e).__name__,
                error_kind=DispatchErrorKind.TRANSPORT.value,
            )
            return DispatchOutcome.failure(DispatchErrorKind.TRANSPORT, str(e))

        duration_ms = round((time.time() - start_time) * 1000, 2)
        return self._handle_function_response(response, event, duration_ms)

    def _get_auth_headers(self, access_token: str | None) -> dict:
        """Supabase Functions expect both a bearer token and the apikey header."""
        token = access_token or self._service_key
        return {
            "Authorization": f"Bearer {token}",
            "apikey": settings.SUPABASE_ANON_KEY or self._service_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _handle_function_response(
        self, response: httpx.Response, event: NotificationEvent, duration_ms: float
    ) -> DispatchOutcome:
        log = logger.bind(
            user_id=event.target_user_id,
            notification_type=event.kind.value,
            status_code=response.status_code,
            duration_ms=duration_ms,
        )

        if not response.is_success:
            message = _extract_error_message(response)
            log.warning(
                "Notification function returned an error",
                error=message,
                error_kind=DispatchErrorKind.REMOTE.value,
            )
            return DispatchOutcome.failure(
                DispatchErrorKind.REMOTE, message, status_code=response.status_code
            )

        try:
            record = NotificationRecord.model_validate(response.json())
        except ValueError as e:
            log.warning(
                "Notification function returned an unreadable record",
                error=str(e),
                error_kind=DispatchErrorKind.REMOTE.value,
            )
            return DispatchOutcome.failure(
                DispatchErrorKind.REMOTE,
                f"Invalid response format: {e}",
                status_code=response.status_code,
            )

        if record.user_id != event.target_user_id:
            log.error(
                "Notification record attributed to the wrong user",
                record_user_id=record.user_id,
                error_kind=DispatchErrorKind.REMOTE.value,
            )
            return DispatchOutcome.failure(
                DispatchErrorKind.REMOTE,
                "Notification stored for a different user",
                status_code=response.status_code,
            )

        log.info("Notification dispatched", notification_id=record.id)
        return DispatchOutcome.success(record)


def _extract_error_message(response: httpx.Response) -> str:
    try:
        data = response.json() if response.text else {}
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return f"HTTP {response.status_code}"


notification_dispatcher = NotificationDispatcher()


def get_notification_dispatcher() -> NotificationDispatcher:
    """FastAPI dependency for the shared dispatcher."""
    return notification_dispatcher

