"""
Logging Configuration

Features:
- Structured JSON logging for production
- Run ID correlation
- Performance logging
- Log level management
"""

import logging
import sys
import uuid
from typing import Any, Dict, Optional
from datetime import datetime, timezone
from contextvars import ContextVar
import json
import traceback

from distwatch.core.config import Settings, settings as default_settings

# Context variable for run correlation
RUN_ID_VAR: ContextVar[Optional[str]] = ContextVar('run_id', default=None)

_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName', 'taskName',
    'processName', 'process', 'message', 'exc_info', 'exc_text',
    'stack_info', 'run_id', 'service_name', 'service_version', 'environment'
}

class ContextualFilter(logging.Filter):
    """Add run and service information to log records."""

    def __init__(self, app_settings: Settings):
        super().__init__()
        self.app_settings = app_settings

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = RUN_ID_VAR.get()
        record.service_name = self.app_settings.project_name
        record.service_version = self.app_settings.version
        record.environment = self.app_settings.environment.value
        return True

class JSONFormatter(logging.Formatter):
    """Production JSON formatter with structured output."""

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line_number": record.lineno,
        }

        if hasattr(record, 'service_name'):
            log_entry["service"] = {
                "name": record.service_name,
                "version": record.service_version,
                "environment": record.environment
            }

        if getattr(record, 'run_id', None):
            log_entry["run_id"] = record.run_id

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info)
            }

        if self.include_extra:
            extra_fields = {}
            for key, value in record.__dict__.items():
                if key in _RESERVED_ATTRS:
                    continue
                try:
                    json.dumps(value)
                    extra_fields[key] = value
                except (TypeError, ValueError):
                    extra_fields[key] = str(value)

            if extra_fields:
                log_entry["extra"] = extra_fields

        return json.dumps(log_entry, ensure_ascii=False)

class DevelopmentFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        run_id = getattr(record, 'run_id', None)
        if run_id:
            formatted = f"[{run_id}] {formatted}"
        return formatted

def setup_logging(app_settings: Optional[Settings] = None) -> None:
    """Configure the root logger for a DistWatch process."""
    app_settings = app_settings or default_settings

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler(sys.stderr)

    if app_settings.observability.log_format == "json" or app_settings.is_production:
        formatter = JSONFormatter(include_extra=True)
    else:
        formatter = DevelopmentFormatter()

    console_handler.setFormatter(formatter)
    console_handler.addFilter(ContextualFilter(app_settings))

    level = logging.DEBUG if app_settings.debug else getattr(logging, app_settings.observability.log_level.value)
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    # Quiet HTTP client internals
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging system initialized",
        extra={
            "log_level": app_settings.observability.log_level.value,
            "log_format": app_settings.observability.log_format
        }
    )

def get_logger(name: str) -> logging.Logger:
    """Get configured logger instance."""
    return logging.getLogger(name)

class LoggingContext:
    """Context manager binding a run ID to every log record emitted inside it."""

    def __init__(self, run_id: Optional[str] = None):
        self.run_id = run_id or uuid.uuid4().hex[:12]
        self._token = None

    def __enter__(self) -> 'LoggingContext':
        self._token = RUN_ID_VAR.set(self.run_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            RUN_ID_VAR.reset(self._token)
            self._token = None

def log_exception(logger: logging.Logger, exc: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    """Log exception with full context."""
    extra_context = dict(context or {})
    extra_context.update({
        "exception_type": type(exc).__name__,
        "exception_message": str(exc),
        "traceback": traceback.format_exc()
    })

    logger.error(
        f"Exception occurred: {type(exc).__name__}: {exc}",
        extra=extra_context,
        exc_info=True
    )

def log_performance(
    logger: logging.Logger,
    operation: str,
    duration_ms: float,
    success: bool = True,
    **context
) -> None:
    """Log performance metrics."""
    level = logging.INFO if success else logging.WARNING

    logger.log(
        level,
        f"Performance: {operation} took {duration_ms:.1f}ms",
        extra={
            "operation": operation,
            "duration_ms": duration_ms,
            "success": success,
            "performance_metric": True,
            **context
        }
    )

__all__ = [
    'setup_logging',
    'get_logger',
    'LoggingContext',
    'log_exception',
    'log_performance',
    'RUN_ID_VAR'
]
