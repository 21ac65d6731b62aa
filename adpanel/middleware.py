"""
Custom middleware for security headers and request processing.
"""
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .config import get_settings
from .logging_config import get_logger, request_id_var

settings = get_settings()
request_logger = get_logger("requests")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"

        # Playback pages may be framed by the panel itself, nobody else
        response.headers["X-Frame-Options"] = "SAMEORIGIN"

        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

        return response


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and log its outcome.

    The id is echoed in ``X-Request-ID`` (a client-supplied one is kept) and
    attached to every log line emitted while the request is served.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or f"req_{uuid.uuid4().hex[:8]}"
        token = request_id_var.set(request_id)
        start_time = time.time()
        try:
            try:
                response = await call_next(request)
            except Exception as e:
                request_logger.error(
                    f"{request.method} {request.url.path} -> ERROR",
                    error=e,
                    duration_ms=round((time.time() - start_time) * 1000, 2),
                )
                raise

            process_time = time.time() - start_time
            if response.status_code >= 500:
                log = request_logger.error
            elif response.status_code >= 400:
                log = request_logger.warning
            elif settings.debug:
                log = request_logger.info
            else:
                log = request_logger.debug
            log(
                f"{request.method} {request.url.path} -> {response.status_code}",
                status_code=response.status_code,
                duration_ms=round(process_time * 1000, 2),
            )
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(process_time)
        return response
