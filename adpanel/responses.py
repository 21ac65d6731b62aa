"""
Advertising Panel Response Utilities
Error envelope and exception handlers
"""
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional
from datetime import datetime, timezone

from .errors import PanelError, ValidationError
from .logging_config import api_logger


def _timestamp() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


def error_body(message: str, error_code: str, details: Optional[Dict] = None) -> Dict[str, Any]:
    body = {
        "ok": False,
        "error": message,
        "error_code": error_code,
        "timestamp": _timestamp(),
    }
    if details:
        body["details"] = details
    return body


# ============================================================
# EXCEPTION HANDLERS
# ============================================================

async def api_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for API errors"""

    if isinstance(exc, PanelError):
        log = api_logger.warning if exc.status_code < 500 else api_logger.error
        log(
            f"API Error: {exc.message}",
            status_code=exc.status_code,
            error_code=exc.error_code,
            retryable=exc.retryable,
            path=request.url.path,
        )
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.error_code, exc.details),
            headers=headers,
        )

    if isinstance(exc, HTTPException):
        api_logger.warning(
            f"HTTP Error: {exc.detail}",
            status_code=exc.status_code,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail), f"HTTP_{exc.status_code}"),
            headers=getattr(exc, "headers", None),
        )

    # Handle unexpected errors
    api_logger.error(
        f"Unexpected error: {exc}",
        error=exc,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=500,
        content=error_body("An unexpected error occurred", "INTERNAL_ERROR"),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request body/query validation failures as 400s."""
    fields = [".".join(str(part) for part in err.get("loc", ()) if part != "body") for err in exc.errors()]
    api_logger.warning("Request validation failed", path=request.url.path, fields=fields)
    return JSONResponse(
        status_code=ValidationError.status_code,
        content=error_body("Invalid request", ValidationError.error_code, {"fields": fields}),
    )


# ============================================================
# VALIDATION HELPERS
# ============================================================

def require(value: Any, field_name: str):
    """Require a field to be present"""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field_name} is required", {"field": field_name})
    return value
