"""
Centralized logging utilities with scoped loggers and decorators.
Provides structured logging with consistent field names across services.
"""

import functools
import inspect
import logging
import sys
import time
from typing import Any, Callable
from enum import Enum

import structlog

from shared_utils.constants import LogScope


# JSON lines on stdout, one event per line
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class LogLevel(str, Enum):
    """Log level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def configure_logging(level: str = LogLevel.INFO.value) -> None:
    """Route stdlib logging (and therefore structlog) to stdout at ``level``.

    Called once by the API process and the worker on startup.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )


def get_scoped_logger(scope: str) -> structlog.BoundLogger:
    """Get a scoped logger for a specific service/component.

    Args:
        scope: LogScope value (api, insights, planning, speech, ...)

    Returns:
        Structured logger bound to scope.
    """
    logger = structlog.get_logger()
    return logger.bind(scope=scope)


def log_execution(scope: str = LogScope.API, level: str = LogLevel.INFO.value):
    """Decorator to log start, success and failure of a call with its duration.

    Works for plain functions and coroutine functions alike.

    Args:
        scope: Log scope identifier
        level: Log level used for the start/success events

    Example:
        @log_execution(scope=LogScope.PLANNING)
        def generate_plan(self, meeting_id):
            ...
    """
    method = level.lower()

    def decorator(func: Callable) -> Callable:
        def _start(logger, args, kwargs) -> float:
            getattr(logger, method)(
                f"{func.__name__}_start",
                func_name=func.__name__,
                args_count=len(args),
                kwargs_keys=list(kwargs.keys())
            )
            return time.time()

        def _success(logger, started: float, result: Any) -> None:
            getattr(logger, method)(
                f"{func.__name__}_success",
                func_name=func.__name__,
                elapsed_seconds=time.time() - started,
                result_type=type(result).__name__
            )

        def _failure(logger, started: float, exc: Exception) -> None:
            logger.error(
                f"{func.__name__}_failed",
                func_name=func.__name__,
                elapsed_seconds=time.time() - started,
                error_type=type(exc).__name__,
                error_message=str(exc)
            )

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs) -> Any:
                logger = get_scoped_logger(scope)
                started = _start(logger, args, kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _failure(logger, started, e)
                    raise
                _success(logger, started, result)
                return result

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            logger = get_scoped_logger(scope)
            started = _start(logger, args, kwargs)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _failure(logger, started, e)
                raise
            _success(logger, started, result)
            return result

        return wrapper
    return decorator


class ContextualLogger:
    """Scoped logger that carries fixed context fields on every event."""

    def __init__(self, scope: str, **context: Any):
        self.scope = scope
        self.context = dict(context)
        self.logger = get_scoped_logger(scope).bind(**context)

    def bind(self, **context: Any) -> "ContextualLogger":
        """Return a new logger with additional context."""
        return ContextualLogger(self.scope, **{**self.context, **context})

    def info(self, event_name: str, **kwargs):
        self.logger.info(event_name, **kwargs)

    def debug(self, event_name: str, **kwargs):
        self.logger.debug(event_name, **kwargs)

    def warning(self, event_name: str, **kwargs):
        self.logger.warning(event_name, **kwargs)

    def error(self, event_name: str, **kwargs):
        self.logger.error(event_name, **kwargs)

    def critical(self, event_name: str, **kwargs):
        self.logger.critical(event_name, **kwargs)
