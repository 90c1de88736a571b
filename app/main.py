# app/main.py
"""
Application entrypoint: lifespan (database pool, notification dispatcher),
middleware and routers.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.db.pool import db_pool
from app.infrastructure.observability.logging import get_logger, log_request, setup_logging
from app.middleware import CORSMiddleware, RequestContextMiddleware
from app.routes import functions, health, notifications, trust
from app.services.notifications.dispatcher import notification_dispatcher

setup_logging(log_level=settings.LOG_LEVEL, service_name=settings.SERVICE_NAME)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""

    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    try:
        await db_pool.initialize()
    except Exception as e:
        logger.error("Failed to initialize services", error=str(e))
        raise

    logger.info(
        "All services initialized successfully",
        notification_function=notification_dispatcher.function_url,
    )

    yield

    logger.info("Application shutting down")

    shutdown_errors = []

    # Let queued notifications finish before the HTTP client goes away
    try:
        logger.info("Draining notification dispatcher", pending=notification_dispatcher.pending_count)
        await notification_dispatcher.close()
    except Exception as e:
        logger.error("Error closing notification dispatcher", error=str(e))
        shutdown_errors.append(f"Dispatcher: {e}")

    try:
        await db_pool.close()
    except Exception as e:
        logger.error("Error closing database pool", error=str(e))
        shutdown_errors.append(f"Database: {e}")

    if shutdown_errors:
        logger.warning("Some services had shutdown errors", errors=shutdown_errors)
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Lost & Found Notifications",
    description="Notification dispatch and trust badges for the lost & found marketplace",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allowed_origins=settings.CORS_ALLOWED_ORIGINS,
    exempt_path_prefixes=["/functions/"],
)
app.add_middleware(RequestContextMiddleware)

app.include_router(health.router)
app.include_router(functions.router)
app.include_router(notifications.router)
app.include_router(trust.router)


@app.exception_handler(StarletteHTTPException)
async def route_http_exception(request: Request, exc: StarletteHTTPException):
    if functions.is_function_path(request.url.path):
        return functions.function_error_response(exc)
    return await http_exception_handler(request, exc)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
