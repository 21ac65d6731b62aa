"""
Advertising Panel Logging Configuration

Every logger writes one line per record to stdout, either JSON (default) or
coloured text. Context passed as keyword arguments is merged into the record;
keys that can carry credentials are masked before formatting, and the id of
the request being served is attached when one is set.
"""
import asyncio
import json
import logging
import os
import sys
import time
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Dict, Optional

# ============================================================
# SETTINGS
# ============================================================

LOG_LEVEL = os.environ.get("ADPANEL_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.environ.get("ADPANEL_LOG_FORMAT", "json")  # json or text

# Set per request by RequestContextMiddleware
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

SENSITIVE_KEYS = frozenset({
    "password",
    "password_hash",
    "token",
    "access_token",
    "refresh_token",
    "razorpay_key_secret",
    "key_secret",
    "razorpay_signature",
    "signature",
})
MASK = "***"

# Chatty libraries that would otherwise log every gateway call
QUIET_LOGGERS = ("urllib3", "multipart", "passlib")


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def mask_context(context: Dict[str, Any]) -> Dict[str, Any]:
    return {key: MASK if key.lower() in SENSITIVE_KEYS and value else value for key, value in context.items()}


# ============================================================
# FORMATTERS
# ============================================================

class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": _now().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = getattr(record, "request_id", "")
        if request_id:
            entry["request_id"] = request_id
        entry.update(getattr(record, "context", {}))
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Readable single-line output for local development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    DIM = "\033[90m"
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        line = f"{color}[{_now():%H:%M:%S}] [{record.levelname:<7}]{self.RESET} {record.name}: {record.getMessage()}"

        request_id = getattr(record, "request_id", "")
        context = {k: v for k, v in getattr(record, "context", {}).items() if k != "traceback"}
        if request_id:
            context = {"request_id": request_id, **context}
        if context:
            line += f" {self.DIM}(" + " ".join(f"{k}={v}" for k, v in context.items()) + f"){self.RESET}"

        tb = getattr(record, "context", {}).get("traceback")
        if tb:
            line += "\n" + tb.rstrip()
        return line


def _make_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if LOG_FORMAT == "json" else TextFormatter())
    return handler


# ============================================================
# STRUCTURED LOGGER
# ============================================================

class StructuredLogger:
    """Thin wrapper taking context as keyword arguments: ``log.info("msg", user_id=3)``."""

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
        self.logger.propagate = False
        if not self.logger.handlers:
            self.logger.addHandler(_make_handler())

    def _log(self, level: int, message: str, context: Dict[str, Any]):
        if not self.logger.isEnabledFor(level):
            return
        self.logger.log(
            level,
            message,
            extra={"context": mask_context(context), "request_id": request_id_var.get()},
        )

    def debug(self, message: str, **context):
        self._log(logging.DEBUG, message, context)

    def info(self, message: str, **context):
        self._log(logging.INFO, message, context)

    def warning(self, message: str, **context):
        self._log(logging.WARNING, message, context)

    def error(self, message: str, error: Optional[Exception] = None, **context):
        if error is not None:
            context["error_type"] = type(error).__name__
            context["error_message"] = str(error)
            context["traceback"] = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
        self._log(logging.ERROR, message, context)


# ============================================================
# FUNCTION TIMING DECORATOR
# ============================================================

def timed(logger: StructuredLogger):
    """Log how long the wrapped call took, and its failure if it raised."""
    def decorator(func):
        def _failed(start, error):
            logger.error(
                f"{func.__name__} failed",
                error=error,
                function=func.__name__,
                duration_ms=round((time.time() - start) * 1000, 2),
            )

        def _completed(start):
            logger.debug(
                f"{func.__name__} completed",
                function=func.__name__,
                duration_ms=round((time.time() - start) * 1000, 2),
            )

        if asyncio.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                start = time.time()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _failed(start, e)
                    raise
                _completed(start)
                return result
            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            start = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _failed(start, e)
                raise
            _completed(start)
            return result
        return sync_wrapper

    return decorator


# ============================================================
# LOGGER INSTANCES
# ============================================================

for _name in QUIET_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

api_logger = StructuredLogger("adpanel.api")
db_logger = StructuredLogger("adpanel.db")
payment_logger = StructuredLogger("adpanel.payments")
realtime_logger = StructuredLogger("adpanel.realtime")


def get_logger(name: str) -> StructuredLogger:
    """Logger under the ``adpanel.`` namespace."""
    return StructuredLogger(f"adpanel.{name}")
