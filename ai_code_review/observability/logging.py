"""
Structured logging configuration.

Provides JSON-formatted logging with context management for
better observability in production environments. Every record passes
through a redacting filter before it is formatted.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, TextIO

from ai_code_review.config import Settings
from ai_code_review.observability.redaction import redact_secrets, redact_value


# Context variable for storing request context (correlation id, ...)
log_context: ContextVar[Dict[str, Any]] = ContextVar('log_context', default={})

# LogRecord attributes that are not user-supplied `extra` fields
_RESERVED_ATTRS = set(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {'message', 'asctime'}


class RedactingFilter(logging.Filter):
    """Scrub secrets from the message, its arguments and extra fields."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = redact_secrets(str(record.msg))
        if record.args:
            record.args = redact_value(record.args)
        for key, value in list(vars(record).items()):
            if key not in _RESERVED_ATTRS:
                setattr(record, key, redact_value(value))
        return True


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Formats log records as JSON with additional context fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        context = log_context.get()
        if context:
            log_data['context'] = context

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': redact_secrets(str(record.exc_info[1])),
                'traceback': redact_secrets(self.formatException(record.exc_info)),
            }

        extra = {k: v for k, v in vars(record).items() if k not in _RESERVED_ATTRS}
        if extra:
            log_data.update(extra)

        # Add source location for errors and above
        if record.levelno >= logging.ERROR:
            log_data['source'] = {
                'file': record.pathname,
                'line': record.lineno,
                'function': record.funcName,
            }

        return json.dumps(log_data, default=str)


class ContextFormatter(logging.Formatter):
    """
    Human-readable formatter with context.

    Used for development/debugging with better readability.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with context."""
        base_msg = super().format(record)

        context = log_context.get()
        if context:
            context_str = ' '.join(f'{k}={v}' for k, v in context.items())
            base_msg = f'{base_msg} [{context_str}]'

        return base_msg


def setup_logging(settings: Settings, stream: TextIO = sys.stdout) -> None:
    """
    Configure application logging.

    Sets up structured JSON logging for production (or LOG_FORMAT=json)
    and human-readable logging otherwise.

    Args:
        settings: Application settings
        stream: Where log lines are written (stderr for stdio servers)
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(stream)
    console_handler.setLevel(log_level)
    console_handler.addFilter(RedactingFilter())

    if settings.ENVIRONMENT == 'production' or settings.LOG_FORMAT == 'json':
        formatter = JSONFormatter()
    else:
        formatter = ContextFormatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Set levels for noisy libraries
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)
    logging.getLogger('openai').setLevel(logging.WARNING)

    root_logger.info(
        f'Logging configured: level={settings.LOG_LEVEL}, '
        f'environment={settings.ENVIRONMENT}'
    )


class LogContext:
    """
    Context manager for adding structured context to logs.

    Usage:
        with LogContext(correlation_id='abc'):
            logger.info('Processing review')  # Includes context in log
    """

    def __init__(self, **kwargs):
        self.context = kwargs
        self.token = None

    def __enter__(self):
        """Enter context - set context variables."""
        current = log_context.get().copy()
        current.update(self.context)
        self.token = log_context.set(current)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context - restore previous context."""
        if self.token:
            log_context.reset(self.token)
