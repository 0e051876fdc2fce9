"""
IRP API - Logging

One ``irp`` logger for the whole service. Development gets a readable
single-line format; production emits one JSON object per record so the
log shipper can index the ``extra`` fields (``event_type``, ``auth_event``,
``activity_action`` and friends).

Request and account ids are carried in context variables set by the
request middleware and the identity verifier, and stamped on every record.
"""

import json
import logging
import sys
import traceback
import uuid
from contextvars import ContextVar
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from irp.core.config import settings


request_id_var: ContextVar[str] = ContextVar('request_id', default='')
user_id_var: ContextVar[str] = ContextVar('user_id', default='')

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024

# Attributes every LogRecord has; anything else came in through `extra=`
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {'message', 'asctime'}

_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine")


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def set_user_id(user_id: str) -> None:
    user_id_var.set(user_id)


def generate_request_id() -> str:
    """Short correlation id for one request"""
    return uuid.uuid4().hex[:8]


class JSONFormatter(logging.Formatter):
    """Structured records for production"""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
            "request_id": request_id_var.get() or None,
            "user_id": user_id_var.get() or None,
        }

        if record.exc_info and record.exc_info[0]:
            exc_type, exc_value, exc_tb = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }

        payload.update({
            key: value for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and not key.startswith('_')
        })
        return json.dumps(payload, default=str)


class ContextualFormatter(logging.Formatter):
    """Plain text with request and account ids, for development"""

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = request_id_var.get() or '-'
        record.user_id = user_id_var.get() or '-'
        return super().format(record)


class IRPLogger(logging.Logger):
    """Logger with one helper per kind of event the service reports"""

    def log_request(self, method: str, path: str, status_code: int,
                    duration_ms: float, **kwargs) -> None:
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        self.log(
            level,
            f"{method} {path} -> {status_code} ({duration_ms:.2f}ms)",
            extra={
                "event_type": "http_request",
                "http_method": method,
                "http_path": path,
                "http_status": status_code,
                "duration_ms": round(duration_ms, 2),
                **kwargs
            }
        )

    def log_auth_event(self, event: str, success: bool, user_email: Optional[str] = None,
                       reason: Optional[str] = None, **kwargs) -> None:
        """Sign-in and token outcomes. Failures go here only, never to the activity log."""
        message = f"Auth {event}: {'success' if success else 'failed'}"
        if user_email:
            message += f" - {user_email}"
        if reason:
            message += f" - {reason}"
        self.log(
            logging.INFO if success else logging.WARNING,
            message,
            extra={
                "event_type": "auth",
                "auth_event": event,
                "auth_success": success,
                "user_email": user_email,
                "failure_reason": reason,
                **kwargs
            }
        )

    def log_activity_failure(self, action: str, resource: str, error: Exception,
                             **kwargs) -> None:
        """An activity record that could not be written and was dropped"""
        self.error(
            f"Activity record dropped: {action} {resource}: {type(error).__name__}: {error}",
            exc_info=(type(error), error, error.__traceback__),
            extra={
                "event_type": "activity_record_failed",
                "activity_action": action,
                "activity_resource": resource,
                "error_type": type(error).__name__,
                **kwargs
            }
        )

    def log_error_with_context(self, error: Exception, context: Optional[str] = None,
                               **kwargs) -> None:
        self.error(
            f"Error in {context}: {type(error).__name__}: {error}",
            exc_info=(type(error), error, error.__traceback__),
            extra={
                "event_type": "error",
                "error_type": type(error).__name__,
                "error_context": context,
                **kwargs
            }
        )


def _build_formatters(json_output: bool):
    if json_output:
        formatter = JSONFormatter()
        return formatter, formatter
    file_formatter = ContextualFormatter(
        "%(asctime)s | %(levelname)-8s | [%(request_id)s] [%(user_id)s] | "
        "%(name)s.%(funcName)s:%(lineno)d | %(message)s"
    )
    console_formatter = ContextualFormatter("%(levelname)-8s | [%(request_id)s] %(message)s")
    return file_formatter, console_formatter


def setup_logging() -> IRPLogger:
    """(Re)configure the ``irp`` logger from settings"""
    logging.setLoggerClass(IRPLogger)
    logger = logging.getLogger("irp")
    # The logger may predate setLoggerClass when another module touched it first
    logger.__class__ = IRPLogger
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    logger.propagate = False
    logger.handlers.clear()

    is_production = settings.ENVIRONMENT == "production"
    file_formatter, console_formatter = _build_formatters(json_output=is_production)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if settings.LOG_FILE:
        log_file = Path(settings.LOG_FILE)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=10 if is_production else 3,
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


logger: IRPLogger = setup_logging()


__all__ = [
    'logger',
    'setup_logging',
    'set_request_id',
    'set_user_id',
    'generate_request_id',
    'IRPLogger',
]
