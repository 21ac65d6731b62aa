"""
Domain error taxonomy.

Services raise these; ``responses.api_exception_handler`` turns them into
JSON error bodies. ``retryable`` tells a caller whether repeating the same
request can succeed without changing it.
"""
from typing import Any, Dict, Optional


class PanelError(Exception):
    status_code = 500
    error_code = "INTERNAL_ERROR"
    retryable = False
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(PanelError):
    status_code = 400
    error_code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class InvalidSignature(PanelError):
    status_code = 400
    error_code = "INVALID_SIGNATURE"
    default_message = "Invalid payment signature"


class Unauthorized(PanelError):
    status_code = 401
    error_code = "UNAUTHORIZED"
    default_message = "Authentication required"


class Forbidden(PanelError):
    status_code = 403
    error_code = "FORBIDDEN"
    default_message = "Access denied"


class NotFound(PanelError):
    status_code = 404
    error_code = "NOT_FOUND"
    default_message = "Resource not found"


class Expired(NotFound):
    error_code = "EXPIRED"
    default_message = "Resource expired"


class Conflict(PanelError):
    status_code = 409
    error_code = "CONFLICT"
    default_message = "Resource conflict"


class NotConfigured(PanelError):
    status_code = 500
    error_code = "NOT_CONFIGURED"
    default_message = "Service not configured"


class StoreError(PanelError):
    status_code = 500
    error_code = "STORE_ERROR"
    retryable = True
    default_message = "Storage unavailable"


class GatewayError(PanelError):
    status_code = 502
    error_code = "GATEWAY_ERROR"
    default_message = "Payment gateway request failed"


class CapacityExhausted(PanelError):
    status_code = 503
    error_code = "CAPACITY_EXHAUSTED"
    retryable = True
    default_message = "No capacity available"
