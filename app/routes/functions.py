"""
functions.py
------------
Purpose:
    Hosts the send-notification function at the path the Supabase Functions
    client calls: /functions/v1/send-notification.

Contract:
    OPTIONS -> 200 "ok" with permissive CORS headers (browser pre-flight)
    POST    -> 200 with the stored notification record
               400 {"error": ...} when user_id, title or message is missing,
                   the type is unknown or the body is not JSON
               500 {"error": ...} when the insert fails

    Every response carries the same CORS headers, including auth failures
    raised before the handler runs. Callers authenticate with a
    user access token or the service role key.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.auth.verify import function_auth_dependency
from app.db.helpers import DatabaseError
from app.infrastructure.observability.logging import get_logger
from app.models.domain.auth_domain import AuthContext
from app.services.notification_service import NotificationRequestError, store_notification

router = APIRouter(prefix="/functions/v1", tags=["functions"])
logger = get_logger(__name__)

FUNCTION_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def _json_response(
    content: dict, status_code: int, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        content=content,
        status_code=status_code,
        headers={**(headers or {}), **FUNCTION_CORS_HEADERS},
    )


def is_function_path(path: str) -> bool:
    return path.startswith(router.prefix + "/")


def function_error_response(exc: StarletteHTTPException) -> JSONResponse:
    """Errors raised before the handler runs (auth, unknown method) keep the function's shape."""
    return _json_response({"error": exc.detail}, exc.status_code, headers=exc.headers)


@router.options("/send-notification")
async def send_notification_preflight():
    return PlainTextResponse("ok", headers=FUNCTION_CORS_HEADERS)


@router.post("/send-notification")
async def send_notification(
    request: Request, caller: AuthContext = Depends(function_auth_dependency)
):
    try:
        payload = await request.json()
    except ValueError:
        return _json_response({"error": "Invalid JSON body"}, 400)

    try:
        record = await store_notification(payload)
    except NotificationRequestError as e:
        logger.info("send-notification rejected payload", error=e.message, caller=caller.user_id)
        return _json_response({"error": e.message}, e.status_code)
    except DatabaseError as e:
        logger.error(
            "send-notification failed to store notification",
            error=str(e),
            operation=e.operation,
            caller=caller.user_id,
        )
        return _json_response({"error": str(e)}, 500)

    return _json_response(record.model_dump(mode="json"), 200)
