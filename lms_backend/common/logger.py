"""
Application Logger

This module provides the logging setup shared by the assessment service:
a configurable root logger for the application, a JSON formatter for log
aggregation, a context-carrying adapter and an execution time decorator.
"""

import os
import sys
import json
import time
import logging
import datetime
import functools
import asyncio
from typing import Dict, Any, Optional, Tuple, Type, Union, Callable, TypeVar

DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-32s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
APP_LOGGER_NAME = "lms"

F = TypeVar('F', bound=Callable[..., Any])

__all__ = [
    'configure_logger',
    'LoggerAdapter',
    'JsonFormatter',
    'app_logger',
    'log_execution_time'
]


class JsonFormatter(logging.Formatter):
    """
    Formatter that renders each record as a single JSON object.

    Context attached through ``LoggerAdapter`` (the ``data`` extra) is merged
    into the top-level object so that fields like ``attempt_id`` or
    ``course_id`` are searchable in the aggregator.
    """

    def __init__(self, *, indent: Optional[int] = None):
        super().__init__()
        self.indent = indent

    def format(self, record: logging.LogRecord) -> str:
        log_object = {
            "timestamp": datetime.datetime.fromtimestamp(record.created).isoformat(),
            "name": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno
        }

        if record.exc_info:
            log_object["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info)
            }

        data = getattr(record, 'data', None)
        if isinstance(data, dict):
            log_object.update(data)

        return json.dumps(log_object, indent=self.indent, default=str)


def configure_logger(
    name: str = APP_LOGGER_NAME,
    level: Union[str, int] = logging.INFO,
    format_string: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    use_json: bool = False,
    log_file: Optional[str] = None,
    console_output: bool = True
) -> logging.Logger:
    """
    Configure a logger with console and optional file handlers.

    Args:
        name: Logger name
        level: Log level name or number
        format_string: Format used when ``use_json`` is false
        date_format: Date format used when ``use_json`` is false
        use_json: Emit JSON lines instead of plain text
        log_file: Optional path of a log file
        console_output: Whether to log to stdout

    Returns:
        The configured logger
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers = []

    if use_json:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(format_string, date_format)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        try:
            directory = os.path.dirname(log_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except (FileNotFoundError, PermissionError) as e:
            logger.warning(f"Could not create log file {log_file}: {e}")

    return logger


class LoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that attaches a context dictionary to every record.

    The context is stored under the ``data`` extra, which ``JsonFormatter``
    flattens into the emitted object.
    """

    def __init__(self, logger: logging.Logger, context: Optional[Dict[str, Any]] = None):
        super().__init__(logger, context or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs = kwargs.copy()
        extra = dict(kwargs.get('extra') or {})
        data = dict(extra.get('data') or {})
        data.update(self.extra)
        extra['data'] = data
        kwargs['extra'] = extra
        return msg, kwargs

    def with_context(self, **context) -> 'LoggerAdapter':
        """Return a new adapter with ``context`` merged into the current one."""
        new_context = dict(self.extra)
        new_context.update(context)
        return LoggerAdapter(self.logger, new_context)


def get_app_logger() -> logging.Logger:
    """
    Get or create the application logger.

    On first use the logger is configured from the ``LOG_LEVEL``,
    ``LOG_JSON`` and ``LOG_FILE`` environment variables. ``create_app``
    reconfigures it from the loaded settings.
    """
    logger = logging.getLogger(APP_LOGGER_NAME)

    if not logger.handlers:
        return configure_logger(
            name=APP_LOGGER_NAME,
            level=os.environ.get("LOG_LEVEL", "INFO"),
            use_json=os.environ.get("LOG_JSON", "false").lower() == "true",
            log_file=os.environ.get("LOG_FILE"),
            console_output=True
        )

    return logger


app_logger = get_app_logger()


def log_execution_time(
    logger: Optional[logging.Logger] = None,
    expected_errors: Tuple[Type[BaseException], ...] = ()
) -> Callable[[F], F]:
    """
    Decorator that logs how long a sync or async callable took.

    Success is logged at DEBUG and failure at ERROR before re-raising.
    Exceptions listed in ``expected_errors`` are normal outcomes and are
    logged at INFO instead.
    """
    def decorator(func: F) -> F:
        def _log(start_time: float, error: Optional[BaseException] = None) -> None:
            elapsed = time.perf_counter() - start_time
            target = logger or get_app_logger()
            if error is None:
                target.debug(f"{func.__qualname__} executed in {elapsed:.3f} seconds")
            elif isinstance(error, expected_errors):
                target.info(f"{func.__qualname__} rejected after {elapsed:.3f} seconds: {error}")
            else:
                target.error(f"{func.__qualname__} failed after {elapsed:.3f} seconds: {error}")

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _log(start_time, e)
                raise
            _log(start_time)
            return result

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _log(start_time, e)
                raise
            _log(start_time)
            return result

        return async_wrapper if asyncio.iscoroutinefunction(func) else wrapper
    return decorator
