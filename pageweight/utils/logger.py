import logging
import logging.handlers
import inspect
import sys
import time
from functools import wraps
from pathlib import Path
from typing import Optional

from ..config import settings


ROOT_LOGGER_NAME = "pageweight"


class ColoredFormatter(logging.Formatter):
    """Custom formatter that adds colors to console output."""

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
        'RESET': '\033[0m'      # Reset
    }

    def format(self, record):
        """Format log record with colors for console output."""
        # Color a copy so file handlers sharing the record keep the plain name
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        record.levelname = f"{color}{record.levelname}{self.COLORS['RESET']}"
        return super().format(record)


class RequestContextFilter(logging.Filter):
    """Filter to add request context to log records."""

    def filter(self, record):
        # Set by the request middleware through ``extra``
        record.request_id = getattr(record, 'request_id', 'N/A')
        return True


def setup_logging(
    app_name: str = ROOT_LOGGER_NAME,
    log_level: Optional[str] = None,
    log_dir: Optional[str] = None,
    enable_console: bool = True,
    enable_file: Optional[bool] = None
) -> logging.Logger:
    """
    Set up centralized logging configuration.

    Args:
        app_name: Name of the application/logger
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for the rotating log files
        enable_console: Whether to enable console logging
        enable_file: Whether to enable file logging

    Returns:
        Configured logger instance
    """
    if log_level is None:
        log_level = "DEBUG" if settings.debug else settings.log_level
    if enable_file is None:
        enable_file = settings.log_to_file

    logger = logging.getLogger(app_name)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        fmt='%(asctime)s | %(levelname)-8s | %(name)s | req:%(request_id)s | '
            '%(filename)s:%(lineno)d | %(funcName)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    simple_formatter = ColoredFormatter(
        fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
        datefmt='%H:%M:%S'
    )

    context_filter = RequestContextFilter()

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG if settings.debug else logging.INFO)
        console_handler.setFormatter(simple_formatter)
        console_handler.addFilter(context_filter)
        logger.addHandler(console_handler)

    log_file = None
    if enable_file:
        log_path = Path(log_dir or settings.log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        log_file = log_path / f"{app_name}.log"

        # Rotating file handler (10MB max, keep 5 backups)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(detailed_formatter)
        file_handler.addFilter(context_filter)
        logger.addHandler(file_handler)

        # Separate file for errors
        error_handler = logging.handlers.RotatingFileHandler(
            filename=log_path / f"{app_name}_errors.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(detailed_formatter)
        error_handler.addFilter(context_filter)
        logger.addHandler(error_handler)

    logger.propagate = False

    logger.info(f"Logging configured for {app_name}")
    logger.debug(f"Log level: {log_level}, console: {enable_console}, file: {enable_file}")
    if log_file:
        logger.debug(f"Log file: {log_file}")

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with proper configuration.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    if not root_logger.handlers:
        setup_logging()

    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def log_performance(func):
    """
    Decorator to log function performance metrics.

    Works for both plain and async functions.
    """
    if inspect.iscoroutinefunction(func):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            logger = get_logger(func.__module__)
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
                logger.info(f"{func.__name__} executed in {time.perf_counter() - start_time:.3f}s")
                return result
            except Exception as e:
                logger.error(f"{func.__name__} failed after {time.perf_counter() - start_time:.3f}s: {str(e)}")
                raise
        return async_wrapper

    @wraps(func)
    def wrapper(*args, **kwargs):
        logger = get_logger(func.__module__)
        start_time = time.perf_counter()
        try:
            result = func(*args, **kwargs)
            logger.debug(f"{func.__name__} executed in {time.perf_counter() - start_time:.3f}s")
            return result
        except Exception as e:
            logger.error(f"{func.__name__} failed after {time.perf_counter() - start_time:.3f}s: {str(e)}")
            raise

    return wrapper


class LoggerMixin:
    """Mixin class to add logging capabilities to any class."""

    @property
    def logger(self) -> logging.Logger:
        """Get logger for this class."""
        return get_logger(self.__class__.__module__)


def get_request_logger() -> logging.Logger:
    """Get logger for the request middleware."""
    return get_logger("requests")
