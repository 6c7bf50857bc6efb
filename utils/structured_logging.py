"""
Structured Logging with Correlation IDs

Every record is a single JSON document. Records written inside a request
carry that request's correlation ID, so the authentication decision, the
access check that refused a caller and the database error behind a 500 can
be joined back to one HTTP call.
"""

import json
import logging
import sys
import time
import traceback
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import Request, Response
from pydantic import BaseModel, Field

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

CORRELATION_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

# Applied to loggers created after configure_logging() runs
_default_level = logging.INFO


class LogCategory(str, Enum):
    REQUEST = "request"
    RESPONSE = "response"
    DATABASE = "database"
    SECURITY = "security"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    ERROR = "error"
    BUSINESS = "business"
    SYSTEM = "system"


class StructuredLogEntry(BaseModel):
    """Shape of one log line; unset fields are left out of the JSON."""

    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    level: str
    category: str
    logger: str
    message: str
    correlation_id: Optional[str] = None
    request_id: Optional[str] = None
    user_id: Optional[str] = None

    # HTTP context
    request_method: Optional[str] = None
    request_path: Optional[str] = None
    client_ip: Optional[str] = None
    response_status: Optional[int] = None
    duration_ms: Optional[float] = None

    # Failures
    error_type: Optional[str] = None
    error_message: Optional[str] = None
    error_stack: Optional[str] = None

    # Refused access and spoofing attempts
    security_event: Optional[str] = None
    severity: Optional[str] = None

    extra: Dict[str, Any] = Field(default_factory=dict)


class StructuredLogger:
    """Thin wrapper over a stdlib logger that serializes StructuredLogEntry records."""

    def __init__(self, name: str, level: int = logging.INFO):
        self.name = name
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.logger.handlers = []
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        self.logger.addHandler(handler)
        self.logger.propagate = False

    def log(
        self,
        level: int,
        message: str,
        category: LogCategory = LogCategory.SYSTEM,
        exception: Optional[BaseException] = None,
        **fields,
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return
        if exception is not None:
            fields.update(
                error_type=type(exception).__name__,
                error_message=str(exception),
                error_stack="".join(traceback.format_exception(type(exception), exception, exception.__traceback__)),
            )
        entry = StructuredLogEntry(
            level=logging.getLevelName(level),
            category=category.value if isinstance(category, LogCategory) else category,
            logger=self.name,
            message=message,
            correlation_id=correlation_id_var.get(),
            **fields,
        )
        self.logger.log(level, entry.model_dump_json(exclude_none=True))

    def debug(self, message: str, category: LogCategory = LogCategory.SYSTEM, **fields):
        self.log(logging.DEBUG, message, category, **fields)

    def info(self, message: str, category: LogCategory = LogCategory.SYSTEM, **fields):
        self.log(logging.INFO, message, category, **fields)

    def warning(self, message: str, category: LogCategory = LogCategory.SYSTEM, **fields):
        self.log(logging.WARNING, message, category, **fields)

    def error(self, message: str, category: LogCategory = LogCategory.ERROR, **fields):
        self.log(logging.ERROR, message, category, **fields)

    def critical(self, message: str, category: LogCategory = LogCategory.ERROR, **fields):
        self.log(logging.CRITICAL, message, category, **fields)


class StructuredFormatter(logging.Formatter):
    """JSON for third-party records (uvicorn, sqlalchemy); our own entries pass through."""

    def format(self, record: logging.LogRecord) -> str:
        if isinstance(record.msg, str) and record.msg.startswith("{"):
            return record.msg

        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "category": LogCategory.SYSTEM.value,
            "logger": record.name,
            "message": record.getMessage(),
        }
        correlation_id = correlation_id_var.get()
        if correlation_id:
            entry["correlation_id"] = correlation_id
        if record.exc_info:
            entry["error_stack"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Adopt the caller's correlation ID or mint a new one for this context."""
    correlation_id = correlation_id or f"corr_{uuid.uuid4().hex[:16]}"
    correlation_id_var.set(correlation_id)
    return correlation_id


_loggers: Dict[str, StructuredLogger] = {}


def get_logger(name: str) -> StructuredLogger:
    if name not in _loggers:
        _loggers[name] = StructuredLogger(name, _default_level)
    return _loggers[name]


async def log_request_middleware(request: Request, call_next):
    """Tag the request with correlation/request IDs and log it on the way in and out."""
    correlation_id = set_correlation_id(request.headers.get(CORRELATION_HEADER))
    request_id = f"req_{uuid.uuid4().hex[:8]}"
    request.state.correlation_id = correlation_id
    request.state.request_id = request_id

    logger = get_logger("api.request")
    http = {"request_id": request_id, "request_method": request.method, "request_path": request.url.path}
    logger.info(
        f"{request.method} {request.url.path}",
        LogCategory.REQUEST,
        client_ip=request.client.host if request.client else None,
        **http,
    )

    started = time.perf_counter()
    try:
        response: Response = await call_next(request)
    except Exception as e:
        logger.error(
            "Request failed", exception=e, duration_ms=(time.perf_counter() - started) * 1000, **http
        )
        raise

    response.headers[CORRELATION_HEADER] = correlation_id
    response.headers[REQUEST_ID_HEADER] = request_id
    logger.info(
        f"{response.status_code} {request.method} {request.url.path}",
        LogCategory.RESPONSE,
        response_status=response.status_code,
        duration_ms=(time.perf_counter() - started) * 1000,
        user_id=getattr(request.state, "user_id", None),
        **http,
    )
    return response


def log_security_event(
    event_type: str,
    message: str,
    user_id: Optional[str] = None,
    severity: str = "medium",
    details: Optional[Dict] = None,
):
    """Refused access or a spoofing attempt; always written at WARNING."""
    category = LogCategory.AUTHORIZATION if severity == "low" else LogCategory.SECURITY
    get_logger("security").warning(
        message, category, security_event=event_type, severity=severity, user_id=user_id, extra=details or {}
    )


def log_authentication_event(
    event_type: str,
    user_id: Optional[str] = None,
    success: bool = True,
    details: Optional[Dict] = None,
):
    logger = get_logger("auth")
    extra = {"event": event_type, "success": success, **(details or {})}
    if success:
        logger.debug("Bearer token accepted", LogCategory.AUTHENTICATION, user_id=user_id, extra=extra)
    else:
        logger.warning("Bearer token rejected", LogCategory.AUTHENTICATION, user_id=user_id, extra=extra)


def configure_logging(level: str = "INFO", json_output: bool = True):
    """Set the level for root and structured loggers; optionally JSON-format root handlers."""
    global _default_level
    _default_level = getattr(logging, level.upper(), logging.INFO)

    logging.getLogger().setLevel(_default_level)
    for structured in _loggers.values():
        structured.logger.setLevel(_default_level)
    if json_output:
        for handler in logging.getLogger().handlers:
            handler.setFormatter(StructuredFormatter())

    get_logger("system").info("Logging configured", extra={"level": level, "json_output": json_output})
