"""
CORS Middleware - Cross-Origin Resource Sharing configuration.

Controls which browser origins can call the inbox and trust endpoints.

Paths under an exempt prefix (the hosted /functions/v1/ endpoints) are
passed straight through: those handlers answer their own pre-flight with
permissive headers, the same way a Supabase Edge Function does.

Usage:
    from app.middleware.cors import CORSMiddleware

    app.add_middleware(
        CORSMiddleware,
        allowed_origins=["http://localhost:3000"],
        exempt_path_prefixes=["/functions/"],
    )
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class CORSMiddleware(BaseHTTPMiddleware):
    """
    CORS (Cross-Origin Resource Sharing) middleware.

    Handles preflight OPTIONS requests and adds CORS headers to responses.
    """

    def __init__(
        self,
        app,
        allowed_origins: list[str] | None = None,
        allow_credentials: bool = True,
        allow_methods: list[str] | None = None,
        allow_headers: list[str] | None = None,
        max_age: int = 600,
        exempt_path_prefixes: list[str] | None = None,
    ):
        """
        Initialize CORS middleware.

        Args:
            app: FastAPI application
            allowed_origins: List of allowed origins (e.g., ["http://localhost:3000"])
            allow_credentials: Whether to allow credentials (cookies, auth headers)
            allow_methods: Allowed HTTP methods (default: common methods)
            allow_headers: Allowed request headers (default: common headers)
            max_age: How long (seconds) to cache preflight responses
            exempt_path_prefixes: Paths that manage their own CORS headers
        """
        super().__init__(app)
        self.allowed_origins = allowed_origins or []
        self.allow_credentials = allow_credentials
        self.allow_methods = allow_methods or ["GET", "POST", "PATCH", "DELETE", "OPTIONS"]
        self.allow_headers = allow_headers or [
            "Accept",
            "Content-Type",
            "Authorization",
            "X-Request-ID",
            "X-Client-Info",
            "apikey",
        ]
        self.max_age = max_age
        self.exempt_path_prefixes = tuple(exempt_path_prefixes or [])

        logger.info(
            "CORS middleware initialized",
            allowed_origins=self.allowed_origins,
            exempt_path_prefixes=list(self.exempt_path_prefixes),
        )

    async def dispatch(self, request, call_next):
        if self.exempt_path_prefixes and request.url.path.startswith(self.exempt_path_prefixes):
            return await call_next(request)

        origin = request.headers.get("origin")
        is_allowed_origin = origin in self.allowed_origins if origin else False

        if request.method == "OPTIONS":
            if is_allowed_origin:
                return self._preflight_response(origin)
            logger.warning(
                "CORS preflight rejected - origin not allowed",
                origin=origin,
                path=request.url.path,
            )
            return Response(status_code=403, content="Origin not allowed")

        response = await call_next(request)

        if is_allowed_origin:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            if self.allow_credentials:
                response.headers["Access-Control-Allow-Credentials"] = "true"
        elif origin:
            logger.warning(
                "CORS request from disallowed origin",
                origin=origin,
                path=request.url.path,
            )

        return response

    def _preflight_response(self, origin: str) -> Response:
        headers = {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Methods": ", ".join(self.allow_methods),
            "Access-Control-Allow-Headers": ", ".join(self.allow_headers),
            "Access-Control-Max-Age": str(self.max_age),
            "Vary": "Origin",
        }

        if self.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"

        return Response(status_code=204, headers=headers)
