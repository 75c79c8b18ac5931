"""Structured logging with security sanitization.

JSON output for the service and the wizard client. Sensitive values
(API keys, bearer tokens) are redacted and inline base64 images are
truncated so moodboard payloads never end up in log storage.
"""

import logging
import re
import sys
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pythonjsonlogger.json import JsonFormatter

from .config import settings

# Context variables for request tracking
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
session_id_var: ContextVar[Optional[str]] = ContextVar('session_id', default=None)


class SecuritySanitizer:
    """Sanitize sensitive information from logs."""

    SENSITIVE_PATTERNS = {
        'api_key': re.compile(r'(api[_-]?key["\s:=]+["\']?)([a-zA-Z0-9_-]{20,})', re.IGNORECASE),
        'bearer_token': re.compile(r'(bearer\s+)([a-zA-Z0-9_.-]{20,})', re.IGNORECASE),
        'secret': re.compile(r'(secret["\s:=]+["\']?)([a-zA-Z0-9_.-]{20,})', re.IGNORECASE),
        'authorization': re.compile(r'(authorization["\s:=]+["\']?)([a-zA-Z0-9_.-]{20,})', re.IGNORECASE),
        'openrouter_key': re.compile(r'()(sk-or-[a-zA-Z0-9_-]{16,})'),
    }

    DATA_URL_PATTERN = re.compile(r'(data:[\w/+.-]+;base64,)([A-Za-z0-9+/=]{32,})')

    @classmethod
    def sanitize_string(cls, text: str) -> str:
        """Sanitize a string by redacting secrets and truncating inline images."""
        if not isinstance(text, str):
            return str(text)

        sanitized = cls.DATA_URL_PATTERN.sub(r'\1***TRUNCATED***', text)
        for pattern in cls.SENSITIVE_PATTERNS.values():
            sanitized = pattern.sub(r'\1***REDACTED***', sanitized)

        return sanitized

    @classmethod
    def sanitize_dict(cls, data: Dict[str, Any], max_depth: int = 3) -> Dict[str, Any]:
        """Recursively sanitize a dictionary."""
        if max_depth <= 0:
            return {"...": "max_depth_reached"}

        sanitized = {}
        for key, value in data.items():
            key_lower = key.lower()
            if any(sensitive in key_lower for sensitive in ['password', 'secret', 'access_token', 'api_key', 'authorization']):
                sanitized[key] = "***REDACTED***"
            elif isinstance(value, dict):
                sanitized[key] = cls.sanitize_dict(value, max_depth - 1)
            elif isinstance(value, list):
                sanitized[key] = cls.sanitize_list(value, max_depth - 1)
            elif isinstance(value, str):
                sanitized[key] = cls.sanitize_string(value)
            else:
                sanitized[key] = value

        return sanitized

    @classmethod
    def sanitize_list(cls, data: List[Any], max_depth: int = 3) -> List[Any]:
        """Sanitize a list by sanitizing its elements."""
        if max_depth <= 0:
            return ["...max_depth_reached"]

        sanitized = []
        for item in data[:10]:  # Limit list length in logs
            if isinstance(item, dict):
                sanitized.append(cls.sanitize_dict(item, max_depth - 1))
            elif isinstance(item, list):
                sanitized.append(cls.sanitize_list(item, max_depth - 1))
            elif isinstance(item, str):
                sanitized.append(cls.sanitize_string(item))
            else:
                sanitized.append(item)

        if len(data) > 10:
            sanitized.append(f"...and {len(data) - 10} more items")

        return sanitized


_RESERVED_KEYS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname', 'levelno',
    'lineno', 'module', 'msecs', 'message', 'pathname', 'process', 'processName',
    'relativeCreated', 'thread', 'threadName', 'exc_info', 'exc_text', 'stack_info',
    'taskName',
}


class StructuredFormatter(JsonFormatter):
    """JSON formatter adding service context and sanitized extras."""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['module'] = record.module
        log_record['function'] = record.funcName
        log_record['line'] = record.lineno

        log_record['service'] = settings.service_name
        log_record['environment'] = settings.service_env

        if request_id := request_id_var.get():
            log_record['request_id'] = request_id

        if session_id := session_id_var.get():
            log_record['session_id'] = session_id

        is_production = settings.service_env in ["prod", "production"]
        if record.exc_info and record.exc_info[0] is not None:
            exception_info = {
                'type': record.exc_info[0].__name__,
                'message': SecuritySanitizer.sanitize_string(str(record.exc_info[1])),
            }
            # Tracebacks stay out of production logs
            if not is_production:
                exception_info['traceback'] = traceback.format_exception(*record.exc_info)
            log_record['exception'] = exception_info
            log_record.pop('exc_info', None)

        if 'message' in log_record:
            log_record['message'] = SecuritySanitizer.sanitize_string(log_record['message'])

        for key, value in record.__dict__.items():
            if key in _RESERVED_KEYS:
                continue
            if isinstance(value, dict):
                log_record[key] = SecuritySanitizer.sanitize_dict(value)
            elif isinstance(value, list):
                log_record[key] = SecuritySanitizer.sanitize_list(value)
            elif isinstance(value, str):
                log_record[key] = SecuritySanitizer.sanitize_string(value)
            else:
                log_record[key] = value


def setup_logging(level: str = "INFO", fmt: Optional[str] = None) -> None:
    """Install a single stdout handler on the root logger."""
    root = logging.getLogger()
    root.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    if (fmt or settings.log_format) == "text":
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    else:
        handler.setFormatter(StructuredFormatter('%(timestamp)s %(level)s %(name)s %(message)s'))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # httpx logs every request line at INFO, including full upstream URLs
    logging.getLogger("httpx").setLevel(logging.WARNING)


class StructuredLogger:
    """Thin wrapper passing keyword arguments through as structured extras."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def with_context(self, **kwargs) -> 'StructuredLogger':
        for key, value in kwargs.items():
            if key == 'request_id':
                request_id_var.set(value)
            elif key == 'session_id':
                session_id_var.set(value)
        return self

    def _log(self, level: int, message: str, **kwargs):
        self.logger.log(level, message, extra=SecuritySanitizer.sanitize_dict(kwargs))

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log(logging.ERROR, message, **kwargs)

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, **kwargs)


class LoggerFactory:
    """Factory for creating structured loggers."""

    _loggers: Dict[str, StructuredLogger] = {}

    @classmethod
    def get_logger(cls, name: str) -> StructuredLogger:
        if name not in cls._loggers:
            cls._loggers[name] = StructuredLogger(name)
        return cls._loggers[name]


def log_external_call(logger: StructuredLogger, service: str, operation: str, **kwargs):
    """Log external service call."""
    logger.info(
        f"External call to {service}: {operation}",
        external_service=service,
        operation=operation,
        event_type="external_call",
        **kwargs
    )


def log_business_event(logger: StructuredLogger, event: str, **kwargs):
    """Log business domain event."""
    logger.info(
        f"Business event: {event}",
        business_event=event,
        event_type="business",
        **kwargs
    )
